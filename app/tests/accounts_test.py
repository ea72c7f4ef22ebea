import auth
import config
import crud
import models


def _sign_up_body(**overrides):
    body = {
        "email": "new@example.com",
        "name": "New User",
        "password": "long-enough",
        "country": "NL",
        "terms": True,
        "captcha": "7",
        "captchaAnswer": "7",
    }
    body.update(overrides)
    return body


def test_sign_up_success(client, db_session):
    response = client.post("/sign-up", json=_sign_up_body())
    assert response.status_code == 200
    assert response.json() == {"success": True, "redirect": "/sign-in"}

    user = crud.get_user_by_email(db_session, "new@example.com")
    assert user.full_name == "New User"
    assert user.terms_accepted
    assert auth.verify_password("long-enough", user.password_hash)


def test_sign_up_accepts_checkbox_terms(client):
    response = client.post("/sign-up", json=_sign_up_body(terms="on"))
    assert response.status_code == 200


def test_sign_up_requires_terms(client):
    response = client.post("/sign-up", json=_sign_up_body(terms=False))
    assert response.status_code == 400
    assert "Terms of Service" in response.json()["detail"]


def test_sign_up_rejects_wrong_captcha(client):
    response = client.post("/sign-up", json=_sign_up_body(captcha="8"))
    assert response.status_code == 400
    assert "CAPTCHA" in response.json()["detail"]


def test_sign_up_rejects_invalid_email(client):
    response = client.post("/sign-up", json=_sign_up_body(email="not-an-email"))
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a valid email address."


def test_sign_up_rejects_short_password(client):
    response = client.post("/sign-up", json=_sign_up_body(password="short"))
    assert response.status_code == 400
    assert "at least 8" in response.json()["detail"]


def test_sign_up_duplicate_email(client, user):
    response = client.post("/sign-up", json=_sign_up_body(email="JANE@example.com"))
    assert response.status_code == 409


def test_sign_in_sets_cookie_and_returns_token(client, user):
    response = client.post("/sign-in", json={"email": "jane@example.com", "password": "correct-horse"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["user"]["email"] == "jane@example.com"
    assert data["redirect"] == "/choose-plan"
    assert auth.verify_token(data["token"]).user_id == user.id

    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{config.AUTH_COOKIE_NAME}=")
    assert "httponly" in set_cookie.lower()
    assert "Max-Age" not in set_cookie

    # The cookie alone authenticates later requests
    assert client.get("/auth/me").status_code == 200


def test_sign_in_remember_persists_cookie(client, user):
    response = client.post(
        "/sign-in", json={"email": "jane@example.com", "password": "correct-horse", "remember": True}
    )
    assert response.status_code == 200
    assert "Max-Age=2592000" in response.headers["set-cookie"]


def test_sign_in_redirects_to_dashboard_with_plan(client, db_session, user):
    user.plan = "free"
    db_session.commit()
    response = client.post("/sign-in", json={"email": "Jane@Example.com", "password": "correct-horse"})
    assert response.status_code == 200
    assert response.json()["redirect"] == "/dashboard"


def test_sign_in_wrong_password_and_unknown_email(client, user):
    wrong = client.post("/sign-in", json={"email": "jane@example.com", "password": "nope-nope"})
    unknown = client.post("/sign-in", json={"email": "who@example.com", "password": "correct-horse"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["detail"] == unknown.json()["detail"] == "Invalid email or password."


def test_sign_in_requires_fields(client):
    response = client.post("/sign-in", json={"email": "jane@example.com"})
    assert response.status_code == 400


def test_me_requires_token(client):
    response = client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


def test_me_returns_user(client, user, auth_headers):
    response = client.get("/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["user"] == {
        "id": user.id,
        "email": "jane@example.com",
        "full_name": "Jane Doe",
        "subscribed": False,
    }


def test_me_with_deleted_user(client, db_session, user, auth_headers):
    db_session.query(models.User).delete()
    db_session.commit()
    response = client.get("/auth/me", headers=auth_headers)
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


def test_logout_clears_cookie(client):
    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True}
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{config.AUTH_COOKIE_NAME}=")
    assert "Max-Age=0" in set_cookie
