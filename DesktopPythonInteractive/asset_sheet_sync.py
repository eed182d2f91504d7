#!/usr/bin/env python3
"""
asset_sheet_sync.py

Purpose:
  Move the asset list in and out of the buyback tracker as an Excel workbook.
  - export: download GET /assets/export/excel and save it to a file.
  - import: base64-encode a workbook, POST it to /assets/import/excel and
    print the {success, failed, errors} summary as JSON.

Base URL precedence:
  1) --base-url <value> (CLI)
  2) env BUYBACK_API_URL
  3) DEFAULT_BASE_URL (defined below)

Examples:
  python asset_sheet_sync.py export assets.xlsx
  python asset_sheet_sync.py export audit.xlsx --tz Europe/Amsterdam
  python asset_sheet_sync.py import corrections.xlsx -v

Exit codes:
  0 = success (every imported row applied)
  1 = handled application error, or at least one import row failed
  2 = network/HTTP error
"""

from __future__ import annotations
import os
import sys
import json
import base64
import argparse
import requests
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_BASE_URL = "http://localhost:8089/api"
RESOURCE_PATH = "assets"


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Export or import the buyback asset workbook.")
    p.add_argument("--base-url", default=None,
                   help=f"Base API URL (default: env BUYBACK_API_URL or {DEFAULT_BASE_URL})")
    p.add_argument("--timeout", type=float, default=60.0,
                   help="HTTP timeout in seconds (default: 60)")
    p.add_argument("--no-verify-tls", action="store_true",
                   help="Disable TLS verification (use only for testing).")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Verbose logging to stderr.")
    sub = p.add_subparsers(dest="command", required=True)

    exp = sub.add_parser("export", help="Download the workbook.")
    exp.add_argument("path", help="Where to write the .xlsx file.")
    exp.add_argument("--tz", default=None, help="IANA timezone for Created At / Updated At.")
    exp.add_argument("--active-only", action="store_true",
                     help="Leave deleted assets out of the workbook.")

    imp = sub.add_parser("import", help="Upload a workbook.")
    imp.add_argument("path", help="The .xlsx file to import.")
    return p.parse_args(argv)


def resolve_base_url(cli_url: Optional[str]) -> str:
    return (cli_url or os.getenv("BUYBACK_API_URL") or DEFAULT_BASE_URL).rstrip("/")


def vprint(enabled: bool, *args: Any) -> None:
    if enabled:
        print(*args, file=sys.stderr)


def encode_workbook(path: Path) -> Dict[str, str]:
    """Request body for the import endpoint."""
    return {"data": base64.b64encode(path.read_bytes()).decode("ascii")}


def _raise_for_status(r: requests.Response, action: str) -> None:
    if r.status_code < 400:
        return
    try:
        detail = json.dumps(r.json(), indent=2)
    except ValueError:
        detail = r.text
    raise requests.HTTPError(f"{action} failed ({r.status_code}): {detail}", response=r)


def api_export(session: requests.Session, base_url: str, dest: Path, tz: Optional[str],
               include_deleted: bool, timeout: float, verify_tls: bool, verbose: bool) -> int:
    url = f"{base_url}/{RESOURCE_PATH}/export/excel"
    params: Dict[str, Any] = {"include_deleted": str(include_deleted).lower()}
    if tz:
        params["tz"] = tz
    vprint(verbose, f"GET {url} params={params}")
    r = session.get(url, params=params, timeout=timeout, verify=verify_tls)
    _raise_for_status(r, "Export")
    dest.write_bytes(r.content)
    return len(r.content)


def api_import(session: requests.Session, base_url: str, source: Path,
               timeout: float, verify_tls: bool, verbose: bool) -> Dict[str, Any]:
    url = f"{base_url}/{RESOURCE_PATH}/import/excel"
    vprint(verbose, f"POST {url} file={source}")
    r = session.post(url, json=encode_workbook(source), headers={"Accept": "application/json"},
                     timeout=timeout, verify=verify_tls)
    _raise_for_status(r, "Import")
    return r.json()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    base_url = resolve_base_url(args.base_url)
    verify_tls = not args.no_verify_tls
    path = Path(args.path)

    session = requests.Session()
    try:
        if args.command == "export":
            size = api_export(session, base_url, path, args.tz, not args.active_only,
                              args.timeout, verify_tls, args.verbose)
            print(json.dumps({"status": "exported", "path": str(path), "bytes": size}, indent=2))
            return 0

        summary = api_import(session, base_url, path, args.timeout, verify_tls, args.verbose)
        print(json.dumps(summary, indent=2))
        return 1 if summary.get("failed") else 0

    except requests.exceptions.RequestException as e:
        print(f"NETWORK_ERROR: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
