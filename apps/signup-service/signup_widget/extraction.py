"""Best-effort extraction of customer details from a free-form submission.

Submitted keys are whatever labels the operator chose, so every extractor here
is a heuristic. When several keys qualify and no preferred word settles it the
shortest key wins; that picks ``company`` over ``company_registration_number``
but is not a correctness guarantee.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from signup_widget.geography import GeographyTable
from signup_widget.models import Address, CustomerDraft, SubmittedRequest

logger = logging.getLogger(__name__)

DISALLOWED_KEY_PATTERN = re.compile(
    r"(doc|document|file|upload|picture|image|photo|attachment|form|b\s*form|certificate|license|id|proof|registration|tax)",
    re.I,
)
FILE_LIKE_VALUE_PATTERN = re.compile(r"\.(png|jpe?g|gif|webp|pdf|docx?|xlsx?|zip|rar)$", re.I)
URL_PATTERN = re.compile(r"https?://", re.I)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_TEXT_VALUE = 512

COUNTRY_CODE_MAP = {
    "united states": "US",
    "united states of america": "US",
    "usa": "US",
    "us": "US",
    "united kingdom": "GB",
    "uk": "GB",
    "great britain": "GB",
    "canada": "CA",
    "australia": "AU",
    "india": "IN",
    "pakistan": "PK",
    "germany": "DE",
    "france": "FR",
    "spain": "ES",
    "italy": "IT",
    "united arab emirates": "AE",
    "uae": "AE",
}

EMAIL_KEYS = ("email", "emailaddress", "useremail", "contactemail", "primaryemail", "workemail")
EMAIL_KEY_EXCLUDES = ("verif", "opt", "subscri", "confirm")
FULL_NAME_KEYS = ("fullname", "name", "customername", "applicantname", "contactname", "displayname")
NAME_KEY_EXCLUDES = ("company", "business", "organiz", "firm", "brand", "email", "user")

FALLBACK_FIRST_NAME = "Customer"
FALLBACK_LAST_NAME = "User"

# (exact keys, fuzzy pattern) per address part
ADDRESS_LINE1 = (
    ("address1", "address 1", "address_line_1", "address line 1", "address", "street address",
     "street_address", "street", "street1", "street 1", "line1", "line 1"),
    re.compile(r"address(\s*line)?\s*1|street|line\s*1", re.I),
)
ADDRESS_LINE2 = (
    ("address2", "address 2", "address_line_2", "address line 2", "street2", "street 2", "line2", "line 2",
     "suite", "apt", "apartment", "unit"),
    re.compile(r"address(\s*line)?\s*2|street\s*2|line\s*2|suite|apt|apartment|unit", re.I),
)
CITY = (("city", "town"), re.compile(r"city|town", re.I))
STATE = (
    ("state_or_province", "state", "province", "region"),
    re.compile(r"state|province|region", re.I),
)
POSTAL_CODE = (("postal_code", "postal code", "zip", "zip_code"), re.compile(r"(postal|zip)", re.I))
COUNTRY = (
    ("country_code", "country code", "country"),
    re.compile(r"country|country_code|country code|country name", re.I),
)
ADDRESS_FIRST_NAME = (
    ("address_first_name", "address first name", "shipping_first_name", "billing_first_name"),
    re.compile(r"first(\s*name)?", re.I),
)
ADDRESS_LAST_NAME = (
    ("address_last_name", "address last name", "shipping_last_name", "billing_last_name"),
    re.compile(r"last(\s*name)?", re.I),
)
PHONE = (
    ("phone", "phone_number", "mobile", "mobile_number", "contact_number"),
    re.compile(r"phone|mobile|contact", re.I),
)
COMPANY = (
    ("company", "company_name", "company name", "business", "business_name", "business name", "organization",
     "organisation", "brand", "firm"),
    re.compile(r"company|business|organiza|brand|firm", re.I),
)
PASSWORD = (("password", "pwd"), re.compile(r"pass(word)?|pwd", re.I))


class CustomerExtractionError(ValueError):
    pass


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _normalize(key: Any) -> str:
    return re.sub(r"[^a-z0-9]", "", _text(key).strip().lower())


def _fold(key: Any) -> str:
    return " ".join(_text(key).split()).lower()


def is_plausible_text_value(value: Any) -> bool:
    """Reject values that look like uploads, links or blobs rather than typed text."""
    if isinstance(value, (dict, list, tuple)):
        return False
    text = _text(value).strip()
    if not text or len(text) > MAX_TEXT_VALUE:
        return False
    if URL_PATTERN.search(text):
        return False
    if "/" in text or "\\" in text:
        return False
    return not FILE_LIKE_VALUE_PATTERN.search(text)


def extract_field_value(
    data: Mapping[str, Any],
    exact_keys: Iterable[str],
    fuzzy_pattern: Pattern[str],
    disallow_pattern: Pattern[str] = DISALLOWED_KEY_PATTERN,
    preferred_word: Optional[str] = None,
) -> str:
    """Best guess for one textual value; empty string when no key qualifies."""
    entries = [(str(key), value) for key, value in (data or {}).items()]

    for candidate in exact_keys:
        wanted = _fold(candidate)
        for key, value in entries:
            if _fold(key) != wanted:
                continue
            if disallow_pattern.search(key) or not is_plausible_text_value(value):
                continue
            return _text(value).strip()

    fuzzy: List[Tuple[str, Any]] = [
        (key, value)
        for key, value in entries
        if fuzzy_pattern.search(key) and not disallow_pattern.search(key) and is_plausible_text_value(value)
    ]
    if not fuzzy:
        return ""

    if preferred_word:
        preferred = re.compile(re.escape(preferred_word), re.I)
        for key, value in fuzzy:
            if preferred.search(key):
                return _text(value).strip()

    key, value = min(fuzzy, key=lambda item: len(item[0]))
    return _text(value).strip()


def _best_guess(data: Mapping[str, Any], candidates: Tuple[Tuple[str, ...], Pattern[str]], **kwargs: Any) -> str:
    exact_keys, pattern = candidates
    return extract_field_value(data, exact_keys, pattern, **kwargs)


def normalize_country_code(raw: str, geography: Optional[GeographyTable] = None) -> str:
    text = (raw or "").strip()
    if not text:
        return ""
    code = COUNTRY_CODE_MAP.get(text.lower())
    if code:
        return code
    if re.fullmatch(r"[A-Za-z]{2}", text):
        return text.upper()
    if geography is not None:
        entry = geography.find_country_by_name(text)
        if entry is not None:
            return entry.country_short_code.upper()
    return ""


def extract_country_code(data: Mapping[str, Any], geography: Optional[GeographyTable] = None) -> str:
    return normalize_country_code(_best_guess(data, COUNTRY), geography)


def extract_address(
    data: Mapping[str, Any],
    defaults: Optional[Mapping[str, Optional[str]]] = None,
    geography: Optional[GeographyTable] = None,
) -> Optional[Address]:
    """Structured address, or None unless name, line 1, city and country are all present."""
    defaults = defaults or {}
    address1 = _best_guess(data, ADDRESS_LINE1)
    city = _best_guess(data, CITY)
    country_code = extract_country_code(data, geography)
    first_name = _best_guess(data, ADDRESS_FIRST_NAME) or (defaults.get("first_name") or "")
    last_name = _best_guess(data, ADDRESS_LAST_NAME) or (defaults.get("last_name") or "")

    missing = [
        name
        for name, value in (
            ("first_name", first_name),
            ("last_name", last_name),
            ("address1", address1),
            ("city", city),
            ("country_code", country_code),
        )
        if not value
    ]
    if missing:
        logger.debug("No address extracted; missing %s", ", ".join(missing))
        return None

    return Address(
        first_name=first_name,
        last_name=last_name,
        address1=address1,
        city=city,
        country_code=country_code,
        address2=_best_guess(data, ADDRESS_LINE2) or None,
        state_or_province=_best_guess(data, STATE) or None,
        postal_code=_best_guess(data, POSTAL_CODE) or None,
        phone=defaults.get("phone") or None,
        company=defaults.get("company") or None,
    )


def extract_email(data: Mapping[str, Any], top_level_email: Optional[str] = None) -> str:
    if isinstance(top_level_email, str):
        candidate = top_level_email.strip()
        if EMAIL_PATTERN.match(candidate):
            return candidate.lower()

    entries = [(str(key), value) for key, value in (data or {}).items()]

    for wanted in EMAIL_KEYS:
        for key, value in entries:
            if _normalize(key) != wanted:
                continue
            candidate = _text(value).strip()
            if EMAIL_PATTERN.match(candidate):
                return candidate.lower()

    for key, value in entries:
        normalized = _normalize(key)
        if "mail" not in normalized or any(part in normalized for part in EMAIL_KEY_EXCLUDES):
            continue
        candidate = _text(value).strip()
        if EMAIL_PATTERN.match(candidate):
            return candidate.lower()

    for key, value in entries:
        if isinstance(value, str) and EMAIL_PATTERN.match(value.strip()):
            logger.info("Using email-shaped value from field %r", key)
            return value.strip().lower()

    return ""


def _is_first_name_key(normalized: str) -> bool:
    return normalized in ("firstname", "first", "givenname") or ("first" in normalized and "name" in normalized)


def _is_last_name_key(normalized: str) -> bool:
    if normalized in ("lastname", "last", "surname", "familyname"):
        return True
    return "name" in normalized and any(part in normalized for part in ("last", "sur", "family"))


def _explicit_names(data: Mapping[str, Any]) -> Tuple[str, str]:
    first = next((value for key, value in data.items() if _is_first_name_key(_normalize(key))), None)
    last = next((value for key, value in data.items() if _is_last_name_key(_normalize(key))), None)
    return _text(first).strip(), _text(last).strip()


def extract_name(data: Mapping[str, Any]) -> str:
    data = data or {}
    entries = [(str(key), value) for key, value in data.items()]

    for wanted in FULL_NAME_KEYS:
        for key, value in entries:
            if _normalize(key) == wanted and _text(value).strip():
                return _text(value).strip()

    first, last = _explicit_names(data)
    if first or last:
        return " ".join(part for part in (first, last) if part)

    for key, value in entries:
        normalized = _normalize(key)
        if "name" not in normalized or any(part in normalized for part in NAME_KEY_EXCLUDES):
            continue
        if _text(value).strip():
            return _text(value).strip()

    return ""


def split_name(full_name: str, data: Optional[Mapping[str, Any]] = None) -> Tuple[str, str]:
    """(first, last); explicit first/last keys beat splitting ``full_name`` on whitespace."""
    text = (full_name or "").strip()
    parts = text.split()

    if data:
        first, last = _explicit_names(data)
        if first or last:
            return first or (parts[0] if parts else FALLBACK_FIRST_NAME), last or FALLBACK_LAST_NAME

    if not parts:
        return FALLBACK_FIRST_NAME, FALLBACK_LAST_NAME
    if len(parts) == 1:
        return parts[0], FALLBACK_LAST_NAME
    return " ".join(parts[:-1]), parts[-1]


def extract_phone(data: Mapping[str, Any]) -> str:
    return _best_guess(data, PHONE)


def extract_company(data: Mapping[str, Any]) -> str:
    return _best_guess(data, COMPANY, preferred_word="name")


def extract_password(data: Mapping[str, Any]) -> str:
    return _best_guess(data, PASSWORD)


def build_customer_draft(request: Any, geography: Optional[GeographyTable] = None) -> CustomerDraft:
    if not isinstance(request, SubmittedRequest):
        request = SubmittedRequest.model_validate(request if isinstance(request, dict) else {})
    data: Dict[str, Any] = request.data

    email = extract_email(data, request.email)
    if not email:
        raise CustomerExtractionError("Cannot create customer: email is missing in request")

    first_name, last_name = split_name(extract_name(data), data)
    phone = extract_phone(data)
    company = extract_company(data)
    address = extract_address(
        data,
        {"first_name": first_name, "last_name": last_name, "phone": phone, "company": company},
        geography,
    )

    logger.info(
        "Built customer draft for request %s (address=%s, phone=%s, company=%s)",
        request.id or "-",
        "yes" if address else "no",
        "yes" if phone else "no",
        "yes" if company else "no",
    )
    return CustomerDraft(
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone or None,
        company=company or None,
        password=extract_password(data) or None,
        addresses=[address] if address else [],
    )
