import csv
import io
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from web3.constants import ADDRESS_ZERO

from faucet_api.models.records import ClaimRecord, TokenInfo
from faucet_api.services.eligibility import ETH_COOLDOWN_SECONDS
from faucet_api.stores.base import ClaimHistoryStore, TokenRegistry

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
RANGE_WINDOWS_MS = {
    "today": DAY_MS,
    "week": 7 * DAY_MS,
    "month": 30 * DAY_MS,
}

CSV_HEADER = [
    "User Address", "Token Name", "Token Symbol", "Amount",
    "Transaction Hash", "Status", "Created At", "Completed At",
]


def range_start(range_name: str, now_ms: int) -> int:
    """Earliest timestamp (ms) included in a claims range; 0 for 'all'."""
    window = RANGE_WINDOWS_MS.get(range_name)
    return now_ms - window if window else 0


def iso_timestamp(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _to_decimal(amount: str) -> Decimal:
    try:
        return Decimal(amount)
    except (InvalidOperation, TypeError):
        return Decimal(0)


def _decimal_str(value: Decimal) -> str:
    return format(value.normalize(), "f") if value else "0"


def _token_labels(token_address: str, info: Optional[TokenInfo]):
    if info is not None:
        return info.name, info.symbol
    if token_address.lower() == ADDRESS_ZERO:
        return "Ethereum", "ETH"
    return "Unknown Token", "UNK"


def _token_stats(records: List[ClaimRecord], tokens: Dict[str, TokenInfo]) -> Dict[str, Dict[str, Any]]:
    stats: Dict[str, Dict[str, Any]] = {}
    totals: Dict[str, Decimal] = {}
    for record in records:
        key = record.token_address
        info = tokens.get(key.lower())
        if key not in stats:
            stats[key] = {
                "claims": 0,
                "totalClaimed": "0",
                "symbol": info.symbol if info else "UNKNOWN",
                "name": info.name if info else "Unknown Token",
                "amount": info.amount if info else "0",
                "lastClaim": None,
            }
            totals[key] = Decimal(0)
        entry = stats[key]
        entry["claims"] += 1
        totals[key] += _to_decimal(record.amount)
        entry["totalClaimed"] = _decimal_str(totals[key])
        if entry["lastClaim"] is None or record.timestamp > entry["_last"]:
            entry["_last"] = record.timestamp
            entry["lastClaim"] = iso_timestamp(record.timestamp)
    for entry in stats.values():
        entry.pop("_last", None)
    return stats


def empty_faucet_stats(address: Optional[str] = None) -> Dict[str, Any]:
    body = {
        "totalClaims": 0,
        "totalUsers": 0,
        "cooldownHours": ETH_COOLDOWN_SECONDS // 3600,
        "tokenStats": {},
        "lastUpdated": int(time.time() * 1000),
        "isUserSpecific": address is not None,
    }
    if address is not None:
        body["userAddress"] = address.lower()
    return body


async def faucet_stats(
    history: ClaimHistoryStore,
    registry: TokenRegistry,
    address: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Claim counts for the public stats endpoint, globally or for one address.
    Falls back to empty defaults if the stores cannot be read.
    """
    try:
        tokens = dict(await registry.list_tokens())
        if address is not None:
            claims = {address.lower(): await history.get_user_claims(address)}
        else:
            claims = await history.get_all_claims()
    except Exception:
        logger.exception("Failed to compute faucet statistics")
        return empty_faucet_stats(address)

    records = [record for user_claims in claims.values() for record in user_claims]
    body = empty_faucet_stats(address)
    body["totalClaims"] = len(records)
    body["totalUsers"] = sum(1 for user_claims in claims.values() if user_claims)
    body["tokenStats"] = _token_stats(records, tokens)
    return body


async def list_claims(history: ClaimHistoryStore, registry: TokenRegistry, range_name: str = "all",
                      now_ms: Optional[int] = None) -> List[Dict[str, Any]]:
    """Flattened claims in a range, newest first, in the admin listing shape."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    start = range_start(range_name, now_ms)
    tokens = dict(await registry.list_tokens())

    rows = []
    for user_address, user_claims in (await history.get_all_claims()).items():
        for record in user_claims:
            if record.timestamp < start:
                continue
            name, symbol = _token_labels(record.token_address, tokens.get(record.token_address.lower()))
            created = iso_timestamp(record.timestamp)
            rows.append({
                "id": f"{user_address}-{record.timestamp}",
                "userAddress": user_address,
                "tokenAddress": record.token_address,
                "tokenName": name,
                "tokenSymbol": symbol,
                "amount": record.amount,
                "transactionHash": record.tx_hash,
                "status": "completed",
                "createdAt": created,
                "completedAt": created,
                "_timestamp": record.timestamp,
            })
    rows.sort(key=lambda row: row["_timestamp"], reverse=True)
    for row in rows:
        del row["_timestamp"]
    return rows


def claims_summary(claims: List[Dict[str, Any]]) -> Dict[str, Any]:
    total_value = Decimal(0)
    users = set()
    per_token: Dict[str, Dict[str, Any]] = {}
    for claim in claims:
        amount = _to_decimal(claim["amount"])
        total_value += amount
        users.add(claim["userAddress"])
        entry = per_token.setdefault(claim["tokenAddress"], {
            "tokenAddress": claim["tokenAddress"],
            "tokenName": claim["tokenName"],
            "tokenSymbol": claim["tokenSymbol"],
            "totalClaims": 0,
            "_amount": Decimal(0),
            "_users": set(),
        })
        entry["totalClaims"] += 1
        entry["_amount"] += amount
        entry["_users"].add(claim["userAddress"])

    token_stats = []
    for entry in per_token.values():
        token_stats.append({
            "tokenAddress": entry["tokenAddress"],
            "tokenName": entry["tokenName"],
            "tokenSymbol": entry["tokenSymbol"],
            "totalClaims": entry["totalClaims"],
            "totalAmount": _decimal_str(entry["_amount"]),
            "uniqueUsers": len(entry["_users"]),
        })

    total = len(claims)
    return {
        "stats": {
            "totalClaims": total,
            # history only ever holds confirmed claims
            "successfulClaims": total,
            "failedClaims": 0,
            "pendingClaims": 0,
            "totalValueDistributed": _decimal_str(total_value),
            "uniqueUsers": len(users),
            "averageClaimAmount": _decimal_str(total_value / total) if total else "0",
        },
        "tokenStats": token_stats,
    }


def claims_to_csv(claims: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(CSV_HEADER) + "\n")
    for claim in claims:
        writer.writerow([
            claim["userAddress"],
            claim["tokenName"],
            claim["tokenSymbol"],
            claim["amount"],
            claim["transactionHash"],
            claim["status"],
            claim["createdAt"],
            claim["completedAt"] or "",
        ])
    return buffer.getvalue()
