from prostore import models
from prostore.services.accounts import create_user

from conftest import auth_headers


def test_list_admins_only_returns_admins(client, admin_headers, client_user):
    response = client.get("/api/users/admins", headers=admin_headers)
    assert response.status_code == 200
    assert [u["email"] for u in response.json()] == ["admin@prostore.io"]


def test_list_admins_requires_admin(client, client_headers):
    assert client.get("/api/users/admins", headers=client_headers).status_code == 403


def test_update_user_rehashes_only_with_new_password(client, db, admin_headers, client_user):
    user_id = client_user.id
    old_hash = client_user.password_hash

    response = client.put(f"/api/users/{user_id}", json={"name": "Renamed"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    db.expire_all()
    assert db.get(models.User, user_id).password_hash == old_hash

    response = client.put(f"/api/users/{user_id}", json={"password": "another-secret"}, headers=admin_headers)
    assert response.status_code == 200
    db.expire_all()
    user = db.get(models.User, user_id)
    assert user.password_hash != old_hash
    assert user.check_password("another-secret")


def test_update_user_duplicate_email_is_400(client, admin_headers, client_user):
    response = client.put(
        f"/api/users/{client_user.id}",
        json={"email": "admin@prostore.io"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_update_unknown_user_is_404(client, admin_headers):
    assert client.put("/api/users/missing", json={"name": "x"}, headers=admin_headers).status_code == 404


def test_delete_user_returns_id(client, admin_headers, client_user):
    user_id = client_user.id
    response = client.delete(f"/api/users/{user_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["id"] == user_id
    assert client.delete(f"/api/users/{user_id}", headers=admin_headers).status_code == 404


def test_replace_own_addresses_keeps_order_and_first_primary(client, db):
    user = create_user(db, "Buyer", "buyer@prostore.io", "secret123", models.RoleName.client)
    headers = auth_headers(user)
    payload = [
        {"label": "Work", "street": "Main St 1", "city": "Lima", "district": "Miraflores", "is_primary": True},
        {"street": "Second St 2", "city": "Lima", "district": "Barranco", "is_primary": True},
    ]

    response = client.put("/api/users/me/addresses", json=payload, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert [a["street"] for a in body] == ["Main St 1", "Second St 2"]
    assert [a["is_primary"] for a in body] == [True, False]
    assert body[1]["label"] == "Home"

    listed = client.get("/api/users/me/addresses", headers=headers)
    assert listed.json() == body

    cleared = client.put("/api/users/me/addresses", json=[], headers=headers)
    assert cleared.json() == []
