#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from flask import Flask, Request, current_app, jsonify, make_response, render_template, request
from werkzeug.datastructures import Headers

from .geo import GEOIP_MMDB, lookup_ip_info
from .hostinfo import HostInfo

log = logging.getLogger(__name__)

DEFAULT_PORT = 3100

# ----------------------------- Request side -----------------------------

def flatten_headers(headers: Headers) -> Dict[str, str]:
    """Header name -> all of its values joined with ``;`` in arrival order."""
    return {k: ";".join(headers.getlist(k)) for k in headers.keys()}

def _remote_addr(req: Request) -> str:
    ra = req.remote_addr or ""
    port = req.environ.get("REMOTE_PORT")
    if not ra or not port: return ra
    return f"[{ra}]:{port}" if ":" in ra else f"{ra}:{port}"

def collect_request(req: Request) -> Dict[str, Any]:
    return {
        "remote_addr": _remote_addr(req),
        "host": req.host,
        "method": req.method,
        "user_agent": req.headers.get("User-Agent", ""),
        "x_forwarded_for": req.headers.get("X-Forwarded-For", ""),
        "headers": flatten_headers(req.headers),
    }

def caller_ip(req: Request) -> str:
    # X-Forwarded-For is taken verbatim, hop list included.
    return req.headers.get("X-Forwarded-For", "") or req.remote_addr or ""

# ----------------------------- Host side -----------------------------

def collect_server(host: HostInfo) -> Dict[str, Any]:
    return {
        "hostname": host.hostname(),
        "server_ip": host.server_ip(),
        "network_interfaces": host.interfaces(),
    }

def collect_system(host: HostInfo) -> Dict[str, Any]:
    return {"os": {
        "platform": host.platform(),
        "architecture": host.architecture(),
        "python_version": host.python_version(),
        "cpu_count": host.cpu_count(),
        "total_memory": host.total_memory(),
    }}

# ----------------------------- Builder -----------------------------

def build_report(req: Request, host: HostInfo, db_path: str) -> Dict[str, Any]:
    return {
        "request": collect_request(req),
        "server": collect_server(host),
        "ip_info": lookup_ip_info(caller_ip(req), db_path),
        "system": collect_system(host),
    }

# ----------------------------- Format negotiation -----------------------------

def wants_json(req: Request) -> bool:
    accept = req.headers.get("Accept", "")
    ua = req.headers.get("User-Agent", "")
    return "application/json" in accept or "curl" in ua

# ----------------------------- Endpoints -----------------------------

def index():
    payload = build_report(request, current_app.extensions["host_info"], current_app.config["GEOIP_MMDB"])
    if wants_json(request):
        return jsonify(payload)
    raw_json = json.dumps(payload, ensure_ascii=False, indent=2)
    return make_response(render_template("inspector.html", raw_json=raw_json))

def create_app(host_info: Optional[HostInfo] = None, geoip_db: Optional[str] = None) -> Flask:
    app = Flask(__name__)
    app.config["GEOIP_MMDB"] = geoip_db or GEOIP_MMDB
    app.extensions["host_info"] = host_info or HostInfo()
    app.add_url_rule("/", "index", index, methods=["GET"])
    return app

# ----------------------------- Process entry -----------------------------

def resolve_port(environ=os.environ) -> int:
    return int(environ.get("PORT") or DEFAULT_PORT)

def main() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = resolve_port()
    app = create_app()
    log.info("Server starting on port %s", port)
    try:
        app.run(host="0.0.0.0", port=port, threaded=True)
    except OSError as exc:
        log.critical("Could not listen on port %s: %s", port, exc)
        sys.exit(1)

if __name__ == "__main__":
    main()
