from __future__ import annotations

import argparse
import asyncio
import sys

from edrlink.core.config import get_settings
from edrlink.core.errors import ProviderConfigError, VendorRequestError, VendorRpcError
from edrlink.providers.acronis import client as acronis
from edrlink.providers.acronis.client import AcronisClient
from edrlink.providers.bitdefender.client import BitdefenderClient, BitdefenderConfig


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check vendor credentials with one read-only call per integration."
    )
    parser.add_argument(
        "--vendor",
        choices=["acronis", "bitdefender", "all"],
        default="all",
        help="Integration to check",
    )
    return parser


def _format_error(exc: Exception) -> tuple[int, str]:
    # Map known vendor failures to stable, actionable messages.
    if isinstance(exc, ProviderConfigError):
        return 2, f"PROVIDER_CONFIG_ERROR: {exc}"
    if isinstance(exc, VendorRequestError):
        return 3, f"VENDOR_ERROR status={exc.vendor_status}: {exc}"
    if isinstance(exc, VendorRpcError):
        return 4, f"VENDOR_RPC_ERROR code={exc.rpc_code}: {exc}"
    return 1, f"UNKNOWN_ERROR: {exc}"


async def _check_acronis() -> None:
    client = AcronisClient()
    try:
        await client.get_token()
        parent = get_settings().acronis_parent_tenant_id
        if parent:
            response = await client.request(acronis.TENANT_CHILDREN.format(tenant_id=parent), "GET")
            print(f"acronis ok: {len(response.get('items') or [])} child tenants")
        else:
            print("acronis ok: token issued (ACRONIS_PARENT_TENANT_ID not set)")
    finally:
        await client.aclose()


async def _check_bitdefender() -> None:
    client = BitdefenderClient(BitdefenderConfig.from_settings())
    try:
        response = await client.rpc_call("network", "getNetworkInventoryItems", {})
        total = (response.get("result") or {}).get("total")
        print(f"bitdefender ok: {total} inventory items")
    finally:
        await client.aclose()


async def _run(args: argparse.Namespace) -> int:
    if args.vendor in {"acronis", "all"}:
        await _check_acronis()
    if args.vendor in {"bitdefender", "all"}:
        await _check_bitdefender()
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface vendor failures clearly
        code, message = _format_error(exc)
        print(message, file=sys.stderr)
        return code


if __name__ == "__main__":
    raise SystemExit(main())
