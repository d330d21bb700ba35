"""Read-only host facts: identity, network configuration and runtime statistics."""

from __future__ import annotations
import ipaddress
import os
import platform
import socket
import sys
from typing import Dict, Iterable, Optional

import psutil

_IP_FAMILIES = (socket.AF_INET, socket.AF_INET6)
_SIZE_SUFFIXES = ("B", "kB", "MB", "GB", "TB", "PB", "EB")


def format_bytes(num_bytes: int) -> str:
    """Format a byte count with decimal magnitude suffixes ("12 MB", "1.5 kB")."""
    if num_bytes < 10:
        return f"{num_bytes} B"
    value = float(num_bytes)
    exp = 0
    while value >= 1000 and exp < len(_SIZE_SUFFIXES) - 1:
        value /= 1000
        exp += 1
    value = int(value * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {_SIZE_SUFFIXES[exp]}"
    return f"{value:.0f} {_SIZE_SUFFIXES[exp]}"


def _prefix_len(netmask: Optional[str]) -> Optional[int]:
    if not netmask:
        return None
    try:
        return bin(int(ipaddress.ip_address(netmask))).count("1")
    except ValueError:
        return None


def format_address(address: str, netmask: Optional[str] = None) -> str:
    """Render an interface address as ``addr/prefixlen`` (bare ``addr`` without a netmask)."""
    ip = ipaddress.ip_address(address.split("%", 1)[0])
    plen = _prefix_len(netmask)
    return ip.compressed if plen is None else f"{ip.compressed}/{plen}"


class HostInfo:
    """Provider of host facts that stay constant for the life of the process.

    Every accessor degrades to an empty value instead of raising, so a
    request built on top of it never fails because of the environment.
    """

    def hostname(self) -> str:
        try:
            return socket.gethostname()
        except OSError:
            return ""

    def _if_addrs(self) -> Dict[str, list]:
        try:
            return psutil.net_if_addrs()
        except (OSError, psutil.Error):
            return {}

    def interfaces(self) -> Dict[str, str]:
        # One address per interface; later addresses replace earlier ones.
        out: Dict[str, str] = {}
        for name, addrs in self._if_addrs().items():
            try:
                for a in addrs:
                    if a.family in _IP_FAMILIES:
                        out[name] = format_address(a.address, a.netmask)
            except ValueError:
                continue
        return out

    def server_ip(self) -> str:
        return first_non_loopback_ipv4(
            a.address for addrs in self._if_addrs().values() for a in addrs if a.family == socket.AF_INET
        )

    def platform(self) -> str:
        return sys.platform

    def architecture(self) -> str:
        return platform.machine()

    def python_version(self) -> str:
        return platform.python_version()

    def cpu_count(self) -> int:
        return psutil.cpu_count(logical=True) or os.cpu_count() or 0

    def memory_bytes(self) -> int:
        try:
            return psutil.Process().memory_info().rss
        except psutil.Error:
            return 0

    def total_memory(self) -> str:
        return format_bytes(self.memory_bytes())


def first_non_loopback_ipv4(addresses: Iterable[str]) -> str:
    for addr in addresses:
        try:
            ip = ipaddress.ip_address(addr.split("%", 1)[0])
        except ValueError:
            continue
        if ip.version == 4 and not ip.is_loopback:
            return ip.compressed
    return ""
