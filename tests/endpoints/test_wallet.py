CARD = {
    "card_number": "4111 1111 1111 1234",
    "card_holder": "Ada Lovelace",
    "expiry_date": "12/30",
    "cvv": "123",
}


def test_add_money_and_withdraw(client, user_factory, auth_headers):
    trader = user_factory()
    headers = auth_headers(trader)

    added = client.post("/payment/add-money", json={"amount": 500, **CARD}, headers=headers)
    assert added.status_code == 200, added.text
    assert added.json()["data"]["wallet"] == 500

    withdrawn = client.post("/payment/withdraw", json={"amount": 200, **CARD}, headers=headers)
    assert withdrawn.json()["data"]["wallet"] == 300

    wallet = client.get("/payment/wallet", headers=headers).json()["data"]
    assert wallet["wallet"] == 300
    assert {t["type"] for t in wallet["transactions"]} == {"deposit", "withdrawal"}
    assert all(t["card_number"] == "**** **** **** 1234" for t in wallet["transactions"])


def test_withdraw_more_than_balance_is_rejected(client, user_factory, auth_headers):
    trader = user_factory(wallet=20.0)

    response = client.post(
        "/payment/withdraw", json={"amount": 50, **CARD}, headers=auth_headers(trader)
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Insufficient balance. Available: $20.0"


def test_invalid_amount_is_rejected(client, user_factory, auth_headers):
    trader = user_factory()

    response = client.post(
        "/payment/add-money", json={"amount": 0, **CARD}, headers=auth_headers(trader)
    )

    assert response.status_code == 422
