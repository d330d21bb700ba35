"""Caller geolocation against a local MaxMind GeoLite2-City database."""

from __future__ import annotations
import ipaddress
import logging
import os
from typing import Any, Dict

import geoip2.database
from geoip2.errors import GeoIP2Error
from maxminddb import InvalidDatabaseError

log = logging.getLogger(__name__)

GEOIP_MMDB = os.getenv("GEOIP_MMDB", "GeoLite2-City.mmdb")


def empty_ip_info(ip_txt: str) -> Dict[str, Any]:
    return {
        "public_ip": ip_txt,
        "country_code": "",
        "country": "",
        "city": "",
        "latitude": 0.0,
        "longitude": 0.0,
        "org": "",
        "postal_code": "",
    }


def lookup_ip_info(ip_txt: str, db_path: str = GEOIP_MMDB) -> Dict[str, Any]:
    """Resolve ``ip_txt`` to country, city, coordinates and postal code.

    The database is opened for this call only and closed before returning.
    Any failure (missing database, malformed address, address not in the
    database) yields the empty record; ``org`` is never filled in.
    """
    info = empty_ip_info(ip_txt)
    try:
        reader = geoip2.database.Reader(db_path)
    except (OSError, ValueError, InvalidDatabaseError) as exc:
        log.warning("Could not open GeoIP database %s: %s", db_path, exc)
        return info
    with reader:
        try:
            ip = ipaddress.ip_address(ip_txt)
        except ValueError:
            return info
        try:
            record = reader.city(ip)
        except (GeoIP2Error, ValueError, TypeError) as exc:
            log.warning("IP lookup error for %s: %s", ip_txt, exc)
            return info
    info.update({
        "country_code": record.country.iso_code or "",
        "country": record.country.names.get("en", ""),
        "city": record.city.names.get("en", ""),
        "latitude": record.location.latitude or 0.0,
        "longitude": record.location.longitude or 0.0,
        "postal_code": record.postal.code or "",
    })
    return info
