"""
Tests for the shared coin command line interface.
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from cli.main import cli
from scripts.taproot_tree import verify_script_path
from sharedcoin import SharedCoinTreeBuilder


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def stakeholders_file(isolated_config, alice, bob):
    path = isolated_config / "stakeholders.json"
    path.write_text(json.dumps([alice.to_dict(), bob.to_dict()]))
    return path


def run_json(runner, *args):
    result = runner.invoke(cli, ['-o', 'json', *args])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestTreeCommand:
    """Test the tree command."""

    def test_tree(self, runner, stakeholders_file, alice, bob):
        data = run_json(runner, 'tree', str(stakeholders_file))

        builder = SharedCoinTreeBuilder()
        assert data["stakeholders"] == 2
        assert data["total_amount"] == 1_5000_0000
        assert data["witness_program"] == builder.witness_program([alice, bob]).hex()
        assert data["output_script"] == "5120" + data["witness_program"]
        assert sorted(l["change_output"]["amount"] for l in data["leaves"]) == [5000_0000, 1_0000_0000]

    def test_tree_from_yaml(self, runner, isolated_config, alice, bob):
        path = isolated_config / "stakeholders.yml"
        path.write_text(yaml.safe_dump([alice.to_dict(), bob.to_dict()]))

        data = run_json(runner, 'tree', str(path))

        assert data["witness_program"] == SharedCoinTreeBuilder().witness_program([alice, bob]).hex()

    def test_tree_table_output(self, runner, stakeholders_file):
        result = runner.invoke(cli, ['tree', str(stakeholders_file)])

        assert result.exit_code == 0
        assert "witness_program" in result.stdout

    def test_empty_stakeholder_list(self, runner, isolated_config):
        path = isolated_config / "empty.json"
        path.write_text("[]")

        result = runner.invoke(cli, ['tree', str(path)])

        assert result.exit_code == 1
        assert "No stakeholders provided" in result.output

    def test_malformed_stakeholder_file(self, runner, isolated_config):
        path = isolated_config / "bad.json"
        path.write_text('{"scripts": []}')

        result = runner.invoke(cli, ['tree', str(path)])

        assert result.exit_code == 1
        assert "must contain a list" in result.output


class TestDecodeCommand:
    """Test the decode command."""

    def test_decode_leaf(self, runner, isolated_config, alice, bob):
        info = SharedCoinTreeBuilder().spend_info([alice, bob], alice.scripts[0])

        data = run_json(runner, 'decode', info.leaf.script.hex())

        assert data["shared_coin_leaf"] is True
        assert data["output_index"] == 0
        assert data["amount"] == bob.amount

    def test_decode_plain_script(self, runner, isolated_config, alice):
        data = run_json(runner, 'decode', alice.scripts[0].hex())

        assert data == {"shared_coin_leaf": False}

    def test_decode_invalid_hex(self, runner, isolated_config):
        result = runner.invoke(cli, ['decode', 'not-hex'])

        assert result.exit_code == 2

    def test_decode_corrupt_script(self, runner, isolated_config):
        result = runner.invoke(cli, ['decode', '2001'])

        assert result.exit_code == 1


class TestLocateAndVerify:
    """Test locate and verify commands."""

    def test_locate_then_verify(self, runner, stakeholders_file, alice, bob):
        located = run_json(runner, 'locate', str(stakeholders_file), bob.scripts[0].hex())

        assert located["change_output"]["amount"] == alice.amount
        assert located["remaining_stakeholders"] == [alice.to_dict()]

        program = SharedCoinTreeBuilder().witness_program([alice, bob])
        assert verify_script_path(program, bytes.fromhex(located["leaf_script"]),
                                  bytes.fromhex(located["control_block"]))

        verified = run_json(runner, 'verify', program.hex(), located["leaf_script"], located["control_block"])
        assert verified == {"valid": True}

    def test_verify_failure_exit_code(self, runner, stakeholders_file, alice, bob):
        located = run_json(runner, 'locate', str(stakeholders_file), bob.scripts[0].hex())

        result = runner.invoke(cli, ['-o', 'json', 'verify', '00' * 32,
                                     located["leaf_script"], located["control_block"]])

        assert result.exit_code == 1
        assert json.loads(result.stdout) == {"valid": False}

    def test_locate_unknown_script(self, runner, stakeholders_file, carol):
        result = runner.invoke(cli, ['locate', str(stakeholders_file), carol.scripts[0].hex()])

        assert result.exit_code == 1
        assert "No stakeholder owns this script" in result.output


class TestGlobalOptions:
    """Test configuration wiring."""

    def test_version(self, runner, isolated_config):
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_output_format_from_config(self, runner, stakeholders_file, isolated_config):
        (isolated_config / ".sharedcoin.yml").write_text("cli:\n  output_format: json\n")

        result = runner.invoke(cli, ['tree', str(stakeholders_file)])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["stakeholders"] == 2

    def test_internal_key_from_environment(self, runner, stakeholders_file, monkeypatch, carol_key, alice, bob):
        internal = carol_key.public_key().x_only
        monkeypatch.setenv("SHAREDCOIN_TAPROOT__INTERNAL_PUBKEY", internal.hex())

        data = run_json(runner, 'tree', str(stakeholders_file))

        assert data["internal_pubkey"] == internal.hex()
        assert data["witness_program"] == SharedCoinTreeBuilder(internal).witness_program([alice, bob]).hex()

    def test_invalid_configuration(self, runner, stakeholders_file, monkeypatch):
        monkeypatch.setenv("SHAREDCOIN_CLI__OUTPUT_FORMAT", "csv")

        result = runner.invoke(cli, ['tree', str(stakeholders_file)])

        assert result.exit_code == 1
        assert "Invalid output format" in result.output

    def test_missing_config_file(self, runner, stakeholders_file):
        result = runner.invoke(cli, ['-c', 'missing.yml', 'tree', str(stakeholders_file)])

        assert result.exit_code == 1
        assert "Config file not found" in result.output
