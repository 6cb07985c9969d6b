"""IPv4 helpers: address conversion, address-space enumeration and local subnet lookup."""

from __future__ import annotations

import ipaddress
import socket
from typing import TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from .models import ScanConfiguration

ADDRESS_BITS = 32


def text_to_number(text: str) -> int:
    """Convert a dotted-quad string to its 32-bit integer value."""
    try:
        return int(ipaddress.IPv4Address(text))
    except (ipaddress.AddressValueError, TypeError) as exc:
        raise ValueError(f"not a dotted-quad IPv4 address: {text!r}") from exc


def number_to_text(number: int) -> str:
    """Convert a 32-bit integer to dotted-quad text."""
    return str(ipaddress.IPv4Address(number))


def is_dotted_quad(text: str) -> bool:
    try:
        text_to_number(text)
    except ValueError:
        return False
    return True


def mask_prefix_length(mask: int) -> int:
    """Count the contiguous one bits at the top of ``mask``."""
    bits = 0
    for index in range(ADDRESS_BITS - 1, -1, -1):
        if not mask & (1 << index):
            break
        bits += 1
    return bits


def is_contiguous_mask(mask: int) -> bool:
    prefix = mask_prefix_length(mask)
    expected = ((1 << prefix) - 1) << (ADDRESS_BITS - prefix) if prefix else 0
    return mask == expected


def enumerate_range(start: int, end: int) -> range:
    """Return ``start..end`` inclusive; empty when ``start > end``."""
    if start > end:
        return range(0)
    return range(start, end + 1)


def enumerate_subnet(subnet: int, mask: int) -> range:
    """Return the usable host addresses of ``subnet``/``mask``.

    Network and broadcast addresses are excluded, so masks leaving fewer than
    two host bits produce an empty range.
    """
    network = subnet & mask
    host_bits = ADDRESS_BITS - mask_prefix_length(mask)
    if host_bits < 2:
        return range(0)
    usable = (1 << host_bits) - 2
    return range(network + 1, network + usable + 1)


def enumerate_addresses(config: ScanConfiguration) -> range:
    """Derive the ordered address space to probe for ``config``.

    The result is a lazy ``range``, so even a /8 costs no memory up front.
    """
    if config.mode == "subnet":
        return enumerate_subnet(text_to_number(config.subnet_address), text_to_number(config.subnet_mask))
    return enumerate_range(text_to_number(config.start_address), text_to_number(config.end_address))


def is_local_or_private(address: int) -> bool:
    """Return ``True`` for loopback, link-local and private LAN addresses."""
    ip_obj = ipaddress.IPv4Address(address)
    return ip_obj.is_loopback or ip_obj.is_private or ip_obj.is_link_local


def detect_local_subnet() -> tuple[str, str] | None:
    """Return ``(address, netmask)`` of the first non-loopback IPv4 interface."""
    for interface_addrs in psutil.net_if_addrs().values():
        for addr in interface_addrs:
            if getattr(addr, "family", None) != socket.AF_INET:
                continue
            if not addr.address or not addr.netmask:
                continue
            try:
                ip = ipaddress.ip_address(addr.address)
                mask = text_to_number(addr.netmask)
            except ValueError:
                continue
            if ip.is_loopback or ip.is_link_local:
                continue
            if not is_contiguous_mask(mask) or ADDRESS_BITS - mask_prefix_length(mask) < 2:
                continue
            return str(ip), addr.netmask
    return None
