"""
Genome Chaincode HTTP Gateway

Flask REST API for:
- Invoking chaincode functions as committed transactions
- Reading public gene documents and private details
- Range scans over the gene collection

Run:
    flask --app api.server run --port 8080

Or with gunicorn (production):
    gunicorn -w 1 -b 0.0.0.0:8080 api.server:app
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import Flask, Response as FlaskResponse, jsonify, request
from flask_cors import CORS

from genome_cc import __version__
from genome_cc.chaincode import ERROR, GeneChaincode, Response
from genome_cc.settings import Settings
from vault.store import SealedStateError, Vault
from vault.stub import MockPeer, WorldState, default_collections

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Configuration
settings = Settings.load()
app.config.setdefault("STATE_DIR", settings.STATE_DIR)
_state_lock = threading.Lock()

STATUS_BY_KIND = {
    "InputError": 400,
    "UnknownOperation": 400,
    "AccessDenied": 403,
    "NotFound": 404,
    "AlreadyExists": 409,
}


def _encode_transient(raw: Any) -> Dict[str, bytes]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("transient must be an object")
    # Strings pass through untouched so callers control the exact bytes
    return {
        k: (v.encode("utf-8") if isinstance(v, str) else json.dumps(v).encode("utf-8"))
        for k, v in raw.items()
    }


def _run(function: str, args: List[str], transient: Optional[Dict[str, bytes]] = None,
         commit: bool = True) -> Response:
    # Each cycle rewrites every sealed collection; cycles must not overlap
    with _state_lock:
        try:
            vault = Vault(app.config["STATE_DIR"])
            world = vault.load_world(
                WorldState(default_collections(settings.PUBLIC_MEMBERS, settings.PRIVATE_MEMBERS))
            )
        except SealedStateError as e:
            logger.error(f"{function} aborted: {e}")
            return Response(status=ERROR, message=str(e), kind=type(e).__name__)
        peer = MockPeer(
            GeneChaincode(legacy_index_cleanup=settings.LEGACY_INDEX_CLEANUP),
            world,
            msp_id=request.headers.get("X-MSP-ID", settings.MSP_ID),
        )
        if commit:
            response = peer.invoke(function, args, transient)
            if response.ok:
                vault.save_world(world)
        else:
            response = peer.query(function, args, transient)
    logger.info(f"{function} -> {response.status} {response.kind}".rstrip())
    return response


def _reply(response: Response):
    if not response.ok:
        status = STATUS_BY_KIND.get(response.kind, 500)
        return jsonify({"error": response.message, "kind": response.kind}), status
    if not response.payload:
        return jsonify({"status": "ok"})
    # Payloads are already JSON documents or arrays
    return FlaskResponse(response.payload, mimetype="application/json")


@app.route("/api/health")
def health_check():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    })


@app.route("/api/invoke/<function>", methods=["POST"])
def invoke(function: str):
    """
    Invoke a chaincode function as a committed transaction.

    Body:
        {"args": ["..."], "transient": {"gene": {...}}}
    """
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        return jsonify({"error": "body must be a JSON object", "kind": "InputError"}), 400
    args = body.get("args", [])
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        return jsonify({"error": "args must be a list of strings", "kind": "InputError"}), 400
    try:
        transient = _encode_transient(body.get("transient"))
    except ValueError as e:
        return jsonify({"error": str(e), "kind": "InputError"}), 400
    return _reply(_run(function, args, transient))


@app.route("/api/genes/<name>")
def read_gene(name: str):
    """Public gene document."""
    return _reply(_run("readGene", [name], commit=False))


@app.route("/api/genes/<name>/private")
def read_gene_private_details(name: str):
    """Private details; requires membership of the private collection."""
    return _reply(_run("readGenePrivateDetails", [name], commit=False))


@app.route("/api/genes")
def get_genes_by_range():
    """
    Range scan over collectionGenes.

    Query params:
        - start: inclusive start key (default: "")
        - end: exclusive end key (default: unbounded)
    """
    start = request.args.get("start", "")
    end = request.args.get("end", "")
    return _reply(_run("getGenesByRange", [start, end], commit=False))
