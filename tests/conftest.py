# conftest.py
from types import SimpleNamespace

import pytest
from geoip2.errors import AddressNotFoundError

from connection_inspector import create_app
from connection_inspector.hostinfo import HostInfo


class FakeHostInfo(HostInfo):
    """Fixed host facts so report contents are predictable."""

    def hostname(self):
        return "inspector-test"

    def interfaces(self):
        return {"lo": "::1/128", "eth0": "fe80::1/64"}

    def server_ip(self):
        return "10.0.0.5"

    def platform(self):
        return "linux"

    def architecture(self):
        return "x86_64"

    def python_version(self):
        return "3.12.1"

    def cpu_count(self):
        return 4

    def memory_bytes(self):
        return 12_000_000


def make_city(iso_code="US", country="United States", city="Mountain View",
              lat=37.386, lon=-122.0838, postal="94035"):
    return SimpleNamespace(
        country=SimpleNamespace(iso_code=iso_code, names={"en": country} if country else {}),
        city=SimpleNamespace(names={"en": city} if city else {}),
        location=SimpleNamespace(latitude=lat, longitude=lon),
        postal=SimpleNamespace(code=postal),
    )


class FakeReader:
    """Stands in for geoip2.database.Reader over a tiny in-memory table."""

    records = {"8.8.8.8": make_city()}
    opened = []

    def __init__(self, path):
        self.path = path
        self.closed = False
        FakeReader.opened.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.closed = True

    def city(self, ip):
        rec = self.records.get(str(ip))
        if rec is None:
            raise AddressNotFoundError(f"The address {ip} is not in the database.")
        return rec


@pytest.fixture
def host_info():
    return FakeHostInfo()


@pytest.fixture
def fake_reader(monkeypatch):
    FakeReader.opened = []
    monkeypatch.setattr("geoip2.database.Reader", FakeReader)
    return FakeReader


@pytest.fixture
def app(host_info, fake_reader):
    app = create_app(host_info=host_info, geoip_db="GeoLite2-City.mmdb")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def no_db_client(host_info, tmp_path):
    app = create_app(host_info=host_info, geoip_db=str(tmp_path / "missing.mmdb"))
    app.config["TESTING"] = True
    return app.test_client()
