from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any

from genome_cc import __version__
from genome_cc.chaincode import GeneChaincode, Response
from genome_cc.settings import Settings
from vault.store import SealedStateError, Vault
from vault.stub import MockPeer, WorldState, default_collections


def ensure_state(out: str) -> dict[str, str]:
    os.makedirs(out, exist_ok=True)
    return {
        "vault": out,
        "keys": os.path.join(out, "keys.json"),
    }

def parse_transient(items: list[str]) -> dict[str, bytes]:
    """
    KEY=JSON pairs (repeatable); KEY=@path reads the value from a file.
    """
    transient: dict[str, bytes] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise SystemExit(f"❌ Invalid --transient '{item}', expected KEY=JSON")
        if value.startswith("@"):
            with open(value[1:], "rb") as f:
                transient[key] = f.read()
        else:
            transient[key] = value.encode("utf-8")
    return transient

def load_peer(settings: Settings, out: str, msp_id: str) -> tuple[MockPeer, Vault]:
    vault = Vault(ensure_state(out)["vault"])
    world = WorldState(default_collections(settings.PUBLIC_MEMBERS, settings.PRIVATE_MEMBERS))
    try:
        vault.load_world(world)
    except SealedStateError as e:
        raise SystemExit(f"❌ {e}")
    chaincode = GeneChaincode(legacy_index_cleanup=settings.LEGACY_INDEX_CLEANUP)
    return MockPeer(chaincode, world, msp_id=msp_id), vault

def report(response: Response) -> None:
    if not response.ok:
        print(f"❌ {response.kind}: {response.message}", file=sys.stderr)
        raise SystemExit(1)
    if response.payload:
        print(response.payload.decode("utf-8", errors="replace"))
    else:
        print("✅ OK")

def cmd_init_state(args: Any) -> None:
    settings: Settings = args.settings
    st = ensure_state(args.out)
    if os.path.exists(st["keys"]):
        print(f"⚠️  State already initialised: {args.out}")
        return
    vault = Vault(st["vault"])
    vault.save_world(WorldState(default_collections(settings.PUBLIC_MEMBERS, settings.PRIVATE_MEMBERS)))
    print("✅ State initialised")
    print(f"   state dir : {args.out}")
    print(f"   key file  : {st['keys']}")

def cmd_invoke(args: Any) -> None:
    settings: Settings = args.settings
    peer, vault = load_peer(settings, args.out, args.msp)
    response = peer.invoke(args.function, args.args, parse_transient(args.transient))
    if response.ok:
        vault.save_world(peer.world)
    report(response)

def cmd_query(args: Any) -> None:
    settings: Settings = args.settings
    peer, _ = load_peer(settings, args.out, args.msp)
    report(peer.query(args.function, args.args, parse_transient(args.transient)))

def main(argv: list[str] | None = None) -> None:
    settings = Settings.load()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    p = argparse.ArgumentParser(prog="genome-cc")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    # init-state
    i = sub.add_parser("init-state", help="Create a state directory and its sealing key")
    i.add_argument("--out", default=settings.STATE_DIR, help="State directory")
    i.set_defaults(func=cmd_init_state)

    for name, func, help_text in (
        ("invoke", cmd_invoke, "Run a chaincode function and commit its writes"),
        ("query", cmd_query, "Run a chaincode function without committing"),
    ):
        c = sub.add_parser(name, help=help_text)
        c.add_argument("--out", default=settings.STATE_DIR, help="State directory")
        c.add_argument("--msp", default=settings.MSP_ID, help="Calling organisation MSP ID")
        c.add_argument("--transient", action="append", default=[],
                       help="KEY=JSON or KEY=@file transient entry (repeatable)")
        c.add_argument("function", help="Chaincode function, e.g. initGene, readGene")
        c.add_argument("args", nargs="*", help="Positional function arguments")
        c.set_defaults(func=func)

    args = p.parse_args(argv)
    args.settings = settings
    if hasattr(args, "func"):
        args.func(args)

if __name__ == "__main__":
    main()
