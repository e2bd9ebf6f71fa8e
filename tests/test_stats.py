import csv
import io
from unittest.mock import AsyncMock

from web3.constants import ADDRESS_ZERO

from faucet_api.models.records import ClaimRecord, TokenInfo
from faucet_api.services.stats import (
    CSV_HEADER,
    claims_summary,
    claims_to_csv,
    faucet_stats,
    iso_timestamp,
    list_claims,
    range_start,
)
from faucet_api.stores.memory import InMemoryClaimHistory, InMemoryTokenRegistry

DAY_MS = 24 * 60 * 60 * 1000
NOW_MS = 1_700_000_000_000
ALICE = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
BOB = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"
DAI = "0xb748db3348b98e6c2a2de268ed25b73f78490d25"
STRAY = "0x9999999999999999999999999999999999999999"


async def _populated():
    history = InMemoryClaimHistory()
    registry = InMemoryTokenRegistry()
    await registry.add_token(ADDRESS_ZERO, TokenInfo(symbol="ETH", name="Ethereum", amount="0.1"))
    await registry.add_token(DAI, TokenInfo(symbol="DAI", name="Dai Stablecoin", amount="100"))
    await history.add_claim(ALICE, ClaimRecord(NOW_MS - 10 * DAY_MS, ADDRESS_ZERO, "0.1", "0x01"))
    await history.add_claim(ALICE, ClaimRecord(NOW_MS - 2 * DAY_MS, DAI, "100", "0x02"))
    await history.add_claim(BOB, ClaimRecord(NOW_MS - 1000, ADDRESS_ZERO, "0.1", "0x03"))
    return history, registry


def test_range_start():
    assert range_start("all", NOW_MS) == 0
    assert range_start("today", NOW_MS) == NOW_MS - DAY_MS
    assert range_start("week", NOW_MS) == NOW_MS - 7 * DAY_MS
    assert range_start("month", NOW_MS) == NOW_MS - 30 * DAY_MS


def test_iso_timestamp_is_utc_with_millis():
    assert iso_timestamp(NOW_MS) == "2023-11-14T22:13:20.000Z"


async def test_faucet_stats_global():
    history, registry = await _populated()

    stats = await faucet_stats(history, registry)

    assert stats["totalClaims"] == 3
    assert stats["totalUsers"] == 2
    assert stats["cooldownHours"] == 24
    assert stats["isUserSpecific"] is False
    eth = stats["tokenStats"][ADDRESS_ZERO]
    assert eth["claims"] == 2
    assert eth["totalClaimed"] == "0.2"
    assert eth["symbol"] == "ETH"
    assert eth["lastClaim"] == iso_timestamp(NOW_MS - 1000)


async def test_faucet_stats_for_one_address():
    history, registry = await _populated()

    stats = await faucet_stats(history, registry, ALICE.upper().replace("0X", "0x"))

    assert stats["totalClaims"] == 2
    assert stats["totalUsers"] == 1
    assert stats["userAddress"] == ALICE
    assert set(stats["tokenStats"]) == {ADDRESS_ZERO, DAI}


async def test_faucet_stats_falls_back_to_empty_defaults():
    history = InMemoryClaimHistory()
    history.get_all_claims = AsyncMock(side_effect=RuntimeError("store offline"))

    stats = await faucet_stats(history, InMemoryTokenRegistry())

    assert stats["totalClaims"] == 0
    assert stats["tokenStats"] == {}


async def test_list_claims_filters_and_labels():
    history, registry = await _populated()
    await history.add_claim(BOB, ClaimRecord(NOW_MS - 500, STRAY, "5", "0x04"))

    week = await list_claims(history, registry, "week", now_ms=NOW_MS)

    assert [claim["transactionHash"] for claim in week] == ["0x04", "0x03", "0x02"]
    assert week[0]["tokenName"] == "Unknown Token"
    assert week[0]["tokenSymbol"] == "UNK"
    assert week[2]["tokenSymbol"] == "DAI"
    assert week[1]["status"] == "completed"
    assert week[1]["createdAt"] == week[1]["completedAt"]
    assert len(await list_claims(history, registry, "all", now_ms=NOW_MS)) == 4


async def test_claims_summary():
    history, registry = await _populated()
    claims = await list_claims(history, registry, now_ms=NOW_MS)

    summary = claims_summary(claims)

    assert summary["stats"]["totalClaims"] == 3
    assert summary["stats"]["successfulClaims"] == 3
    assert summary["stats"]["uniqueUsers"] == 2
    assert summary["stats"]["totalValueDistributed"] == "100.2"
    assert summary["stats"]["averageClaimAmount"] == "33.4"
    by_symbol = {entry["tokenSymbol"]: entry for entry in summary["tokenStats"]}
    assert by_symbol["ETH"]["totalAmount"] == "0.2"
    assert by_symbol["ETH"]["uniqueUsers"] == 2


def test_claims_summary_of_nothing():
    assert claims_summary([])["stats"]["averageClaimAmount"] == "0"


async def test_claims_to_csv():
    history, registry = await _populated()
    claims = await list_claims(history, registry, "today", now_ms=NOW_MS)

    rows = list(csv.reader(io.StringIO(claims_to_csv(claims))))

    assert rows[0] == CSV_HEADER
    assert rows[1] == [
        BOB, "Ethereum", "ETH", "0.1", "0x03", "completed",
        iso_timestamp(NOW_MS - 1000), iso_timestamp(NOW_MS - 1000),
    ]
    assert len(rows) == 2
