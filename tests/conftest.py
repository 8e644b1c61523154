"""Shared fixtures: a fresh in-memory peer and the sample gene payload."""

import json

import pytest

from genome_cc.chaincode import GeneChaincode
from vault.stub import MockPeer, WorldState

SAMPLE_GENE = {
    "id": 11,
    "name": "Ron",
    "population": "French",
    "gene": "ADRB2",
    "size": 5,
    "age": 40,
    "varient": "APOB",
    "price": 99,
}


@pytest.fixture
def sample_gene():
    return dict(SAMPLE_GENE)


@pytest.fixture
def world():
    return WorldState()


@pytest.fixture
def peer(world):
    return MockPeer(GeneChaincode(), world)


@pytest.fixture
def create_gene(peer):
    """Invoke initGene with the sample payload, overriding any fields."""
    def _create(**overrides):
        payload = json.dumps({**SAMPLE_GENE, **overrides}).encode("utf-8")
        return peer.invoke("initGene", transient={"gene": payload})
    return _create
