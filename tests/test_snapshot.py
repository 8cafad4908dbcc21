"""Tests for snapshot parsing and collection."""

import asyncio

import aiohttp
import pytest

from simdelta.core.token_account import TOKEN_PROGRAM_ID
from simdelta.errors import RpcError, SimulationError
from simdelta.state.snapshot import SnapshotCollector, parse_account

from conftest import (
    FakeRpcClient,
    USDC_MINT,
    new_address,
    system_account_value,
    token_account_value,
)


def test_parse_token_account():
    owner = new_address()
    snapshot = parse_account(token_account_value(USDC_MINT, owner, 42, lamports=99))

    assert snapshot.native_balance == 99
    assert snapshot.token.mint == USDC_MINT
    assert snapshot.token.owner == owner
    assert snapshot.token.amount == 42


def test_parse_plain_account():
    snapshot = parse_account(system_account_value(1_000))
    assert snapshot.native_balance == 1_000
    assert snapshot.token is None


def test_parse_missing_account():
    assert parse_account(None) is None


def test_token_program_account_of_other_size_is_plain():
    value = {
        "lamports": 1,
        "owner": TOKEN_PROGRAM_ID,
        "data": ["AAAA", "base64"],  # 3 bytes
    }
    assert parse_account(value).token is None


def test_undecodable_data_degrades_to_plain_account():
    value = {"lamports": 5, "owner": TOKEN_PROGRAM_ID, "data": ["@@@", "base64"]}
    snapshot = parse_account(value)
    assert snapshot.native_balance == 5
    assert snapshot.token is None


def test_collect_pairs_post_state_by_position():
    wallet, ata = new_address(), new_address()
    accounts = [wallet, ata]
    rpc = FakeRpcClient(pre={
        wallet: system_account_value(10),
        ata: token_account_value(USDC_MINT, wallet, 1),
    })
    rpc.simulation_for(accounts, {
        wallet: system_account_value(5),
        ata: token_account_value(USDC_MINT, wallet, 9),
    })

    snapshots = asyncio.run(SnapshotCollector(rpc).collect("AQ", accounts))

    assert [p.address for p in snapshots.pairs] == accounts
    assert snapshots.pairs[0].post.native_balance == 5
    assert snapshots.pairs[1].post.token.amount == 9
    assert snapshots.success
    assert snapshots.units_consumed == 1234


def test_simulation_request_options():
    accounts = [new_address(), new_address()]
    rpc = FakeRpcClient(pre={})
    rpc.simulation_for(accounts, {})

    asyncio.run(SnapshotCollector(rpc, commitment="processed").collect("AQxyz", accounts))

    tx, options = rpc.simulate_calls[0]
    assert tx == "AQxyz"
    assert options["sigVerify"] is False
    assert options["replaceRecentBlockhash"] is True
    assert options["commitment"] == "processed"
    assert options["accounts"] == {"encoding": "base64", "addresses": accounts}


def test_pre_fetch_failure_degrades_to_missing():
    good, bad = new_address(), new_address()
    rpc = FakeRpcClient(pre={
        good: system_account_value(1),
        bad: RpcError("boom"),
    })
    rpc.simulation_for([good, bad], {good: system_account_value(1), bad: system_account_value(2)})

    snapshots = asyncio.run(SnapshotCollector(rpc).collect("AQ", [good, bad]))

    assert snapshots.pairs[0].pre.native_balance == 1
    assert snapshots.pairs[1].pre is None
    assert snapshots.pairs[1].post.native_balance == 2


def test_onchain_failure_is_not_an_error():
    account = new_address()
    rpc = FakeRpcClient(pre={account: system_account_value(1)})
    rpc.simulation_for([account], {account: system_account_value(1)}, err={"InstructionError": [0, "Custom"]})

    snapshots = asyncio.run(SnapshotCollector(rpc).collect("AQ", [account]))

    assert not snapshots.success
    assert snapshots.err == {"InstructionError": [0, "Custom"]}


def test_missing_accounts_array_is_fatal():
    rpc = FakeRpcClient(pre={}, simulation={"err": "AccountNotFound", "logs": [], "accounts": None})
    with pytest.raises(SimulationError) as exc:
        asyncio.run(SnapshotCollector(rpc).collect("AQ", [new_address()]))
    assert exc.value.err == "AccountNotFound"


def test_length_mismatch_is_fatal():
    rpc = FakeRpcClient(pre={}, simulation={"err": None, "logs": [], "accounts": [None]})
    with pytest.raises(SimulationError):
        asyncio.run(SnapshotCollector(rpc).collect("AQ", [new_address(), new_address()]))


def test_transport_error_is_fatal():
    rpc = FakeRpcClient(pre={}, simulate_error=aiohttp.ClientConnectionError("refused"))
    with pytest.raises(SimulationError):
        asyncio.run(SnapshotCollector(rpc).collect("AQ", [new_address()]))
