"""
PromptPay QR payloads

Builds and parses EMVCo merchant-presented QR strings for Thai PromptPay.
Each field is tag (2 digits) + length (2 digits) + value; the payload ends
with tag 63 holding a CRC-16/CCITT-FALSE over everything before it,
including the "6304" tag header.
"""

import binascii
import re
from decimal import Decimal
from typing import Optional
from urllib.parse import quote

PROMPTPAY_AID = "A000000677010111"
THB_NUMERIC = "764"
QR_IMAGE_SERVICE = "https://api.qrserver.com/v1/create-qr-code/?size=300x300&data="

TAG_FORMAT = "00"
TAG_INITIATION = "01"
TAG_MERCHANT = "29"
TAG_CURRENCY = "53"
TAG_AMOUNT = "54"
TAG_COUNTRY = "58"
TAG_CRC = "63"

# Sub-tags inside the merchant account field
SUB_AID = "00"
SUB_PHONE = "01"
SUB_NATIONAL_ID = "02"
SUB_EWALLET = "03"


class PromptPayFormatError(ValueError):
    """Payload or proxy id is malformed"""


def tlv(tag: str, value: str) -> str:
    if len(value) > 99:
        raise PromptPayFormatError(f"Value for tag {tag} is too long")
    return f"{tag}{len(value):02d}{value}"


def crc16(data: str) -> str:
    """CRC-16/CCITT-FALSE as four uppercase hex digits"""
    return f"{binascii.crc_hqx(data.encode('ascii'), 0xFFFF):04X}"


def format_proxy(proxy_id: str) -> tuple[str, str]:
    """
    Map a PromptPay proxy (phone, national id or e-wallet id) to its sub-tag.

    Phone numbers are sent in international form: 0066 + number without
    the leading zero, left-padded to 13 digits.
    """
    digits = re.sub(r"\D", "", proxy_id)
    if len(digits) >= 15:
        return SUB_EWALLET, digits
    if len(digits) >= 13:
        return SUB_NATIONAL_ID, digits
    if len(digits) == 10 and digits.startswith("0"):
        return SUB_PHONE, ("66" + digits[1:]).rjust(13, "0")
    raise PromptPayFormatError(f"Unrecognised PromptPay id: {proxy_id}")


def build_payload(proxy_id: str, amount: Optional[Decimal] = None) -> str:
    """Build a PromptPay payload; a payload with an amount is single-use (dynamic)"""
    sub_tag, proxy_value = format_proxy(proxy_id)
    merchant = tlv(SUB_AID, PROMPTPAY_AID) + tlv(sub_tag, proxy_value)

    fields = [
        tlv(TAG_FORMAT, "01"),
        tlv(TAG_INITIATION, "12" if amount is not None else "11"),
        tlv(TAG_MERCHANT, merchant),
        tlv(TAG_CURRENCY, THB_NUMERIC),
    ]
    if amount is not None:
        fields.append(tlv(TAG_AMOUNT, f"{Decimal(amount):.2f}"))
    fields.append(tlv(TAG_COUNTRY, "TH"))

    body = "".join(fields) + TAG_CRC + "04"
    return body + crc16(body)


def parse_payload(payload: str) -> dict[str, str]:
    """
    Split a payload into top-level fields and verify its checksum.

    Raises:
        PromptPayFormatError: if the structure or CRC is invalid
    """
    fields: dict[str, str] = {}
    pos = 0
    while pos < len(payload):
        if pos + 4 > len(payload):
            raise PromptPayFormatError("Truncated field header")
        tag = payload[pos:pos + 2]
        length_str = payload[pos + 2:pos + 4]
        if not length_str.isdigit():
            raise PromptPayFormatError(f"Bad length for tag {tag}")
        length = int(length_str)
        value = payload[pos + 4:pos + 4 + length]
        if len(value) != length:
            raise PromptPayFormatError(f"Truncated value for tag {tag}")
        fields[tag] = value
        pos += 4 + length

    if TAG_CRC not in fields:
        raise PromptPayFormatError("Missing CRC field")
    expected = crc16(payload[:-4])
    if fields[TAG_CRC] != expected:
        raise PromptPayFormatError(f"CRC mismatch: {fields[TAG_CRC]} != {expected}")
    return fields


def qr_image_url(payload: str) -> str:
    """Image URL rendering the payload as a QR code"""
    return QR_IMAGE_SERVICE + quote(payload, safe="")
