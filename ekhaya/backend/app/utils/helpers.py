from datetime import datetime, timezone
from typing import Iterable, Optional
import ipaddress
import re


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the store keeps naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_timestamp(moment: datetime) -> int:
    """Unix timestamp for a naive-UTC or aware datetime."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def normalize_identifier(value: str) -> str:
    """Normalize a username or email for lookup (strip whitespace)."""
    return value.strip()


def make_username(work_number: Optional[str], last_name: Optional[str]) -> Optional[str]:
    """
    Build a staff username as "<work number>.<last name>".

    Returns None if either part is empty after cleaning.
    """
    if not work_number or not last_name:
        return None
    wn = re.sub(r'[^0-9A-Za-z]', '', str(work_number))
    ln = re.sub(r'[^a-z]', '', str(last_name).lower())
    if not wn or not ln:
        return None
    return f"{wn}.{ln}"


def normalize_allowed_ips(entries: Iterable[str]) -> list[str]:
    """
    Validate allow-list entries (single addresses or CIDR networks).

    Raises ValueError on an invalid entry.
    """
    result = []
    for entry in entries:
        entry = entry.strip()
        if not entry:
            continue
        if "/" in entry:
            result.append(str(ipaddress.ip_network(entry, strict=False)))
        else:
            result.append(str(ipaddress.ip_address(entry)))
    return result


def is_ip_allowed(ip_address: Optional[str], allowed: list[str]) -> bool:
    """Check an address against an allow-list. Empty list means unrestricted."""
    if not allowed:
        return True
    if not ip_address:
        return False
    try:
        addr = ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    for entry in allowed:
        try:
            if "/" in entry:
                if addr in ipaddress.ip_network(entry, strict=False):
                    return True
            elif addr == ipaddress.ip_address(entry):
                return True
        except ValueError:
            continue
    return False
