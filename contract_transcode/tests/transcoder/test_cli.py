"""Tests for CLI interface."""

import json

from click.testing import CliRunner

from contract_transcode.transcoder.cli import cli

ALICE_HEX = "0x" + bytes(range(32)).hex()
TRANSFER_CALL = "0x84a15da1" + ALICE_HEX[2:] + "64" + "00" * 15


def describe_encode_command():
    def prints_encoded_call(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["encode", "-m", erc20_path, "-x", "transfer", ALICE_HEX, "100"]
        )
        expect(result.exit_code) == 0
        expect(result.output.strip()) == TRANSFER_CALL

    def reads_metadata_from_environment(expect, erc20_path):
        runner = CliRunner(env={"CONTRACT_METADATA": erc20_path})
        result = runner.invoke(cli, ["encode", "-x", "total_supply"])
        expect(result.exit_code) == 0
        expect(result.output.strip()) == "0xdb6375a8"

    def encodes_constructor(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["encode", "-m", erc20_path, "--constructor", "-x", "new", "1"])
        expect(result.exit_code) == 0
        expect(result.output.strip()) == "0x9bae9d5e01" + "00" * 15

    def reports_unknown_message(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["encode", "-m", erc20_path, "-x", "transfr"])
        expect(result.exit_code) == 1
        expect("did you mean 'transfer'?" in result.output) == True

    def reports_argument_errors(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["encode", "-m", erc20_path, "-x", "transfer", ALICE_HEX, "1u8"]
        )
        expect(result.exit_code) == 1
        expect("argument 'value'" in result.output) == True


def describe_decode_command():
    def prints_decoded_call(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-m", erc20_path, TRANSFER_CALL])
        expect(result.exit_code) == 0
        expect("transfer {" in result.output) == True
        expect("value: 100" in result.output) == True

    def prints_json(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-m", erc20_path, "--json", TRANSFER_CALL])
        expect(result.exit_code) == 0
        expect(json.loads(result.output)) == {
            "transfer": {"to": [ALICE_HEX], "value": 100}
        }

    def decodes_return_value(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["decode", "-m", erc20_path, "-t", "return", "-n", "approve", "--json", "0x0101"]
        )
        expect(result.exit_code) == 0
        expect(json.loads(result.output)) == {"Err": "InsufficientAllowance"}

    def decodes_event(expect, erc20_path):
        runner = CliRunner()
        payload = "0x0000" + "05" + "00" * 15
        result = runner.invoke(
            cli, ["decode", "-m", erc20_path, "-t", "event", "-n", "Transfer", "--json", payload]
        )
        expect(result.exit_code) == 0
        expect(json.loads(result.output)) == {"from": None, "to": None, "value": 5}

    def requires_name_for_events(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-m", erc20_path, "-t", "event", "0x00"])
        expect(result.exit_code) == 2

    def warns_about_trailing_bytes(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-m", erc20_path, TRANSFER_CALL + "ff"])
        expect(result.exit_code) == 0
        expect("1 trailing bytes" in result.output) == True

    def reports_unknown_selector(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-m", erc20_path, "0xdeadbeef"])
        expect(result.exit_code) == 1
        expect("0xdeadbeef" in result.output) == True

    def reports_malformed_hex(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "-m", erc20_path, "0x123"])
        expect(result.exit_code) == 1


def describe_info_command():
    def lists_entries(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-m", erc20_path])
        expect(result.exit_code) == 0
        expect("erc20" in result.output) == True
        expect("0x84a15da1" in result.output) == True
        expect("Transfer" in result.output) == True

    def prints_json(expect, erc20_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-m", erc20_path, "--json"])
        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["name"]) == "erc20"
        expect(data["types"]) == 22
        expect([m["label"] for m in data["messages"]]) == [
            "total_supply",
            "balance_of",
            "transfer",
            "approve",
            "set_metadata",
            "flags",
        ]
        expect(data["constructors"][0]["selector"]) == "0x9bae9d5e"
        expect(data["events"][0]["fields"][0]) == {"label": "from", "type": 19, "indexed": True}

    def rejects_missing_file(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-m", "/nonexistent/metadata.json"])
        expect(result.exit_code) == 2
