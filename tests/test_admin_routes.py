import csv
import io

import pytest

from conftest import USDT
from faucet_api.utils.auth import create_access_token

ADMIN = "/api/v1/admin"
FAUCET = "/api/v1/faucet"
USER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
NEW_TOKEN = "0x2222222222222222222222222222222222222222"


def _new_token(**overrides):
    body = {"address": NEW_TOKEN, "symbol": "tst", "name": "Test Token", "amount": "25", "decimals": 18}
    body.update(overrides)
    return body


@pytest.mark.parametrize("path", ["/stats", "/tokens", "/config", "/users", "/claims"])
def test_admin_routes_require_a_token(client, path):
    assert client.get(f"{ADMIN}{path}").status_code == 401


def test_non_admin_is_forbidden(client, user_headers):
    response = client.get(f"{ADMIN}/stats", headers=user_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


def test_admin_claim_with_foreign_address_is_forbidden(client, settings):
    token = create_access_token(settings, USER, True)
    response = client.get(f"{ADMIN}/stats", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


def test_stats_overview(client, admin_headers):
    client.post(f"{FAUCET}/claim", json={"address": USER})

    body = client.get(f"{ADMIN}/stats", headers=admin_headers).json()

    assert body["faucet"]["status"] == "active"
    assert body["tokens"]["total"] == 7
    assert body["claims"]["total"] == 1
    assert body["claims"]["today"] == 1
    assert body["system"]["version"] == "v1"


def test_add_token_then_claimable_list_includes_it(client, admin_headers, settings):
    response = client.post(f"{ADMIN}/tokens/add", json=_new_token(), headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["token"]["symbol"] == "TST"
    assert body["addedBy"] == settings.admin_address
    listed = client.get(f"{FAUCET}/tokens").json()["tokens"]
    assert NEW_TOKEN in [token["address"] for token in listed]


def test_add_token_validation(client, admin_headers):
    assert client.post(f"{ADMIN}/tokens/add", json=_new_token(address="0x12"), headers=admin_headers).status_code == 400
    missing = client.post(f"{ADMIN}/tokens/add", json=_new_token(symbol=None), headers=admin_headers)
    assert missing.json()["error"] == "Missing Data"
    bad_amount = client.post(f"{ADMIN}/tokens/add", json=_new_token(amount="-1"), headers=admin_headers)
    assert bad_amount.json()["error"] == "Invalid Amount"


def test_add_existing_token_conflicts(client, admin_headers):
    response = client.post(f"{ADMIN}/tokens/add", json=_new_token(address=USDT), headers=admin_headers)
    assert response.status_code == 409


def test_update_token_keeps_unspecified_fields(client, admin_headers):
    response = client.put(f"{ADMIN}/tokens/{USDT}", json={"amount": "50"}, headers=admin_headers)

    assert response.status_code == 200
    token = response.json()["token"]
    assert token["amount"] == "50"
    assert token["symbol"] == "USDT"
    assert token["decimals"] == 6


def test_update_unknown_token_is_404(client, admin_headers):
    response = client.put(f"{ADMIN}/tokens/{NEW_TOKEN}", json={"amount": "50"}, headers=admin_headers)
    assert response.status_code == 404


def test_deactivated_token_cannot_be_claimed(client, admin_headers, contract):
    response = client.patch(f"{ADMIN}/tokens/{USDT}/status", json={"isActive": False}, headers=admin_headers)
    assert response.json()["token"]["isActive"] is False

    listed = [token["address"] for token in client.get(f"{FAUCET}/tokens").json()["tokens"]]
    assert USDT.lower() not in listed
    claim = client.post(f"{FAUCET}/claim", json={"address": USER, "tokenAddress": USDT})
    assert claim.status_code == 400
    contract.submit_token_claim.assert_not_called()


def test_removed_token_is_no_longer_listed(client, admin_headers):
    response = client.delete(f"{ADMIN}/tokens/{USDT}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["removedToken"]["symbol"] == "USDT"
    listed = [token["address"] for token in client.get(f"{FAUCET}/tokens").json()["tokens"]]
    assert USDT.lower() not in listed
    assert client.delete(f"{ADMIN}/tokens/{USDT}", headers=admin_headers).status_code == 404


def test_bulk_remove_reports_per_address_errors(client, admin_headers):
    response = client.request(
        "DELETE",
        f"{ADMIN}/tokens",
        json={"addresses": [USDT, NEW_TOKEN, "bogus"]},
        headers=admin_headers,
    )

    body = response.json()
    assert [token["symbol"] for token in body["removedTokens"]] == ["USDT"]
    assert body["errors"] == [
        {"address": NEW_TOKEN, "error": "Token not found"},
        {"address": "bogus", "error": "Invalid address format"},
    ]


def test_pause_and_unpause(client, admin_headers, settings):
    paused = client.post(f"{ADMIN}/pause", json={"reason": "Upgrade"}, headers=admin_headers)
    assert paused.json()["status"] == "paused"
    assert paused.json()["pausedBy"] == settings.admin_address
    assert client.post(f"{ADMIN}/pause", json={}, headers=admin_headers).status_code == 400

    assert client.post(f"{FAUCET}/claim", json={"address": USER}).status_code == 503

    resumed = client.post(f"{ADMIN}/unpause", headers=admin_headers)
    assert resumed.json()["status"] == "active"
    assert client.post(f"{ADMIN}/unpause", headers=admin_headers).json()["error"] == "Not Paused"
    assert client.post(f"{FAUCET}/claim", json={"address": USER}).status_code == 200


def test_pause_without_body_uses_default_reason(client, admin_headers):
    assert client.post(f"{ADMIN}/pause", headers=admin_headers).json()["reason"] == "Maintenance"


def test_config_read_and_acknowledged_update(client, admin_headers):
    config = client.get(f"{ADMIN}/config", headers=admin_headers).json()["config"]
    assert config["rateLimitMaxRequests"] == 10
    assert config["maintenanceMode"] is False

    update = client.put(f"{ADMIN}/config", json={"rateLimitMaxRequests": 99}, headers=admin_headers)
    assert update.json()["success"] is True
    assert client.get(f"{ADMIN}/config", headers=admin_headers).json()["config"]["rateLimitMaxRequests"] == 10


def test_connection_probe(client, admin_headers, contract):
    response = client.post(f"{ADMIN}/test-connection", json={"type": "rpc"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["chainId"] == 11155111
    contract.submit_eth_claim.assert_not_called()


def test_connection_probe_failure(client, admin_headers, contract):
    contract.probe.side_effect = OSError("connection refused")
    response = client.post(f"{ADMIN}/test-connection", json={"type": "rpc"}, headers=admin_headers)
    assert response.status_code == 500
    assert response.json()["error"] == "RPC Connection Failed"


def test_connection_probe_rejects_unknown_type(client, admin_headers):
    response = client.post(f"{ADMIN}/test-connection", json={"type": "db"}, headers=admin_headers)
    assert response.status_code == 400


def test_user_management_stubs(client, admin_headers, settings):
    users = client.get(f"{ADMIN}/users", headers=admin_headers).json()
    assert users["users"][0]["address"] == settings.admin_address

    status = client.patch(f"{ADMIN}/users/1/status", json={"status": "banned"}, headers=admin_headers)
    assert status.json()["user"] == {"id": "1", "status": "banned"}
    admin = client.patch(f"{ADMIN}/users/1/admin", json={"isAdmin": False}, headers=admin_headers)
    assert admin.json()["user"] == {"id": "1", "isAdmin": False}


def test_claims_listing_respects_range(client, admin_headers, clock):
    client.post(f"{FAUCET}/claim", json={"address": USER})
    clock.advance(2 * 24 * 60 * 60)
    client.post(f"{FAUCET}/claim", json={"address": USER, "tokenAddress": USDT})

    today = client.get(f"{ADMIN}/claims", params={"range": "today"}, headers=admin_headers)
    everything = client.get(f"{ADMIN}/claims", headers=admin_headers)

    assert everything.json()["range"] == "all"
    assert everything.json()["totalClaims"] == 2
    assert [claim["tokenSymbol"] for claim in everything.json()["claims"]] == ["USDT", "ETH"]
    assert [claim["tokenSymbol"] for claim in today.json()["claims"]] == ["USDT"]


def test_claims_range_must_be_known(client, admin_headers):
    response = client.get(f"{ADMIN}/claims", params={"range": "decade"}, headers=admin_headers)
    assert response.status_code == 400


def test_claims_stats(client, admin_headers):
    client.post(f"{FAUCET}/claim", json={"address": USER})
    client.post(f"{FAUCET}/claim", json={"address": USER, "tokenAddress": USDT})

    body = client.get(f"{ADMIN}/claims/stats", headers=admin_headers).json()

    assert body["stats"]["totalClaims"] == 2
    assert body["stats"]["uniqueUsers"] == 1
    assert body["stats"]["totalValueDistributed"] == "100.1"
    assert {entry["tokenSymbol"] for entry in body["tokenStats"]} == {"ETH", "USDT"}


def test_claims_export_csv(client, admin_headers):
    client.post(f"{FAUCET}/claim", json={"address": USER})

    response = client.get(f"{ADMIN}/claims/export", params={"range": "all"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].startswith('attachment; filename="claims-all-')
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == [
        "User Address", "Token Name", "Token Symbol", "Amount",
        "Transaction Hash", "Status", "Created At", "Completed At",
    ]
    assert rows[1][:4] == [USER.lower(), "Ethereum", "ETH", "0.1"]
    assert rows[1][5] == "completed"


def test_contract_balance_reports_eth_and_registered_tokens(client, admin_headers, contract):
    response = client.get(f"{ADMIN}/contract-balance", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["eth"] == {"balance": str(5 * 10 ** 18)}
    assert len(body["tokens"]) == 6
    assert USDT.lower() in [token["address"] for token in body["tokens"]]
    contract.submit_eth_claim.assert_not_called()


def test_contract_balance_skips_tokens_that_fail(client, admin_headers, contract):
    async def token_balance(token):
        if token == USDT.lower():
            raise ValueError("execution reverted")
        return {"address": token, "symbol": "X", "name": "X", "balance": "0", "decimals": 18}

    contract.token_balance.side_effect = token_balance
    body = client.get(f"{ADMIN}/contract-balance", headers=admin_headers).json()

    addresses = [token["address"] for token in body["tokens"]]
    assert len(addresses) == 5
    assert USDT.lower() not in addresses


def test_contract_balance_fails_when_eth_balance_unavailable(client, admin_headers, contract):
    contract.eth_balance.side_effect = OSError("connection refused")

    response = client.get(f"{ADMIN}/contract-balance", headers=admin_headers)

    assert response.status_code == 500
    assert response.json()["message"] == "Failed to fetch contract balance"
