import json

import pytest
import rlp

from arbpatch.gas.pricing import PriceTuple
from arbpatch.interfaces.cli import main
from tests import TESTDATA_CONFIG

DEPOSIT = b"\x7e" + rlp.encode(
    [b"\x11" * 32, b"\x22" * 20, b"\x33" * 20, 0, 1, 21000, b"", b""]
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("ARB_LIVE_RPC", "ARB_PRECOMPILES_CONFIG", "STYLUS_RPC", "NITRO_RPC"):
        monkeypatch.delenv(name, raising=False)


def test_version(capsys):
    with pytest.raises(SystemExit) as pytest_wrapped_e:
        main(["version"])
    assert pytest_wrapped_e.value.code is None
    captured = capsys.readouterr()
    assert captured.out.find(" version ") >= 1


def test_alias(capsys):
    l1 = "0x0000000000000000000000000000000000000001"
    l2 = "0x1111000000000000000000000000000000001112"

    main(["alias", l1])
    assert capsys.readouterr().out.strip() == l2

    main(["alias", "--undo", l2])
    assert capsys.readouterr().out.strip() == l1


def test_alias_rejects_invalid_address():
    with pytest.raises(SystemExit) as pytest_wrapped_e:
        main(["alias", "0x1234"])
    assert pytest_wrapped_e.value.code == 1


def test_decode_deposit(capsys):
    main(["decode-deposit", "0x" + DEPOSIT.hex()])
    out = capsys.readouterr().out
    assert "Deposit Transaction (0x7e):" in out
    assert "Gas Limit: 21,000" in out
    assert "Hash: 0x" in out


def test_decode_deposit_json(capsys):
    main(["decode-deposit", "--json", DEPOSIT.hex()])
    result = json.loads(capsys.readouterr().out)
    assert result["success"]
    assert result["transaction"]["to"] == "0x" + "33" * 20
    assert result["transaction"]["gas"] == 21000
    assert result["transaction"]["warnings"] == []


@pytest.mark.parametrize("raw", ("0x02", "zz", "0x7ec0"))
def test_decode_deposit_failures(capsys, raw):
    with pytest.raises(SystemExit) as pytest_wrapped_e:
        main(["decode-deposit", "--json", raw])
    assert pytest_wrapped_e.value.code == 1
    assert json.loads(capsys.readouterr().out)["success"] is False


def test_gas_info_local_only(capsys):
    main(["gas-info", "--json", "--config", str(TESTDATA_CONFIG)])
    result = json.loads(capsys.readouterr().out)
    assert result["remote"] is None
    assert result["local"]["l1_base_fee_estimate"] == 496


def test_gas_info_against_live_node(capsys, mocker):
    remote = PriceTuple(69440, 500, 2000000000000, 100000000, 0, 100000000)
    fetch = mocker.patch(
        "arbpatch.interfaces.cli.ConfigResolver.fetch_prices", return_value=remote
    )
    main(
        [
            "gas-info",
            "--config",
            str(TESTDATA_CONFIG),
            "--rpc",
            "http://localhost:8547",
        ]
    )
    fetch.assert_called_once_with("http://localhost:8547")
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["field", "local", "remote"]
    changed = [line.split()[0] for line in lines[1:] if line.endswith("*")]
    assert changed == ["l1_base_fee_estimate"]


def test_gas_info_rejects_bad_rpc():
    with pytest.raises(SystemExit) as pytest_wrapped_e:
        main(["gas-info", "--rpc", "localhost:8547"])
    assert pytest_wrapped_e.value.code == 1


def test_invalid_log_level():
    with pytest.raises(SystemExit) as pytest_wrapped_e:
        main(["-v", "9", "alias", "0x0000000000000000000000000000000000000001"])
    assert pytest_wrapped_e.value.code == 1
