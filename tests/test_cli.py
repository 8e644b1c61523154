"""
Tests for the genome-cc command line.
"""

import json
import shutil
import tempfile

import pytest

from cli.main import main, parse_transient


@pytest.fixture
def state_dir():
    tmpdir = tempfile.mkdtemp()
    yield tmpdir
    shutil.rmtree(tmpdir)


class TestParseTransient:
    """KEY=JSON and KEY=@file entries."""

    def test_inline(self):
        assert parse_transient(['gene={"name": "Ron"}']) == {"gene": b'{"name": "Ron"}'}

    def test_from_file(self, state_dir):
        path = f"{state_dir}/gene.json"
        with open(path, "wb") as f:
            f.write(b'{"name": "Ron"}')
        assert parse_transient([f"gene=@{path}"]) == {"gene": b'{"name": "Ron"}'}

    def test_missing_separator(self):
        with pytest.raises(SystemExit):
            parse_transient(["gene"])


class TestCommands:
    """init-state, invoke and query against a state directory."""

    def test_invoke_persists_between_runs(self, state_dir, sample_gene, capsys):
        main(["init-state", "--out", state_dir])
        main(["invoke", "--out", state_dir, "--transient", f"gene={json.dumps(sample_gene)}", "initGene"])
        capsys.readouterr()

        main(["query", "--out", state_dir, "readGene", "Ron"])
        out = capsys.readouterr().out
        assert json.loads(out)["gene"] == "ADRB2"

    def test_query_does_not_persist(self, state_dir, sample_gene, capsys):
        main(["query", "--out", state_dir, "--transient", f"gene={json.dumps(sample_gene)}", "initGene"])
        with pytest.raises(SystemExit) as exc:
            main(["query", "--out", state_dir, "readGene", "Ron"])
        assert exc.value.code == 1
        assert "NotFound" in capsys.readouterr().err

    def test_failure_exits_nonzero(self, state_dir, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["invoke", "--out", state_dir, "initGene"])
        assert exc.value.code == 1
        assert "gene must be a key in the transient map" in capsys.readouterr().err

    def test_init_state_twice(self, state_dir, capsys):
        main(["init-state", "--out", state_dir])
        main(["init-state", "--out", state_dir])
        assert "already initialised" in capsys.readouterr().out
