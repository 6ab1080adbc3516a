"""
Access and role guard behaviour through real routes.
"""
from conftest import auth_header, users_by_email, user_doc


def test_missing_authorization_header_is_unauthorized(client):
    response = client.get("/users")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "unauthorized access"}


def test_header_without_token_is_unauthorized(client):
    response = client.get("/users", headers={"Authorization": "Bearer"})

    assert response.status_code == 401


def test_invalid_token_is_unauthorized(client):
    response = client.get("/users", headers=auth_header("forged-token"))

    assert response.status_code == 401


def test_non_admin_is_forbidden(client, mock_db):
    mock_db.users.find_one.side_effect = users_by_email(user_doc("user@example.com"))

    response = client.get("/users", headers=auth_header("user-token"))

    assert response.status_code == 403
    assert response.json()["message"] == "forbidden access"


def test_unknown_account_is_forbidden(client, mock_db):
    mock_db.users.find_one.side_effect = users_by_email()

    response = client.get("/users", headers=auth_header("user-token"))

    assert response.status_code == 403


def test_admin_can_list_users(client, mock_db):
    admin = user_doc("admin@example.com", role="admin")
    mock_db.users.find_one.side_effect = users_by_email(admin)
    mock_db.users.find.return_value.to_list.return_value = [admin]

    response = client.get("/users", headers=auth_header("admin-token"))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["total"] == 1
    assert body["data"]["users"][0]["_id"] == str(admin["_id"])


def test_creator_route_rejects_plain_user(client, mock_db):
    mock_db.users.find_one.side_effect = users_by_email(user_doc("user@example.com"))

    response = client.get("/creator/contests", headers=auth_header("user-token"))

    assert response.status_code == 403


def test_checkout_blocks_admins_and_creators(client, mock_db):
    mock_db.users.find_one.side_effect = users_by_email(
        user_doc("admin@example.com", role="admin"),
        user_doc("creator@example.com", role="creator")
    )
    body = {"contestId": "64b7f0c2e4b0a1a2b3c4d5e6"}

    for token in ("admin-token", "creator-token"):
        response = client.post("/payment-checkout-session", json=body, headers=auth_header(token))
        assert response.status_code == 403


def test_validation_errors_use_envelope(client, mock_db):
    response = client.post("/users", json={"email": "not-an-email"})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert "email" in body["errors"]
