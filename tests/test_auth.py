from datetime import timedelta

from app.core.security import create_access_token, bearer_token_from_header


def test_missing_token_is_401(client):
    resp = client.get("/api/users/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Não autenticado"}


def test_invalid_token_is_401(client):
    resp = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_expired_token_is_401(client, make_user):
    user = make_user()
    token = create_access_token(user.id, expires_delta=timedelta(minutes=-5))
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_unknown_user_is_401(client):
    token = create_access_token("00000000-0000-0000-0000-000000000000")
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert "error" in resp.json()


def test_admin_routes_reject_students(client, make_user, auth):
    user = make_user()
    resp = client.get("/api/admin/submissions", headers=auth(user))
    assert resp.status_code == 403
    assert "error" in resp.json()


def test_bearer_header_parsing():
    assert bearer_token_from_header("Bearer abc") == "abc"
    assert bearer_token_from_header("bearer   abc ") == "abc"
    assert bearer_token_from_header("Basic abc") is None
    assert bearer_token_from_header("Bearer ") is None
    assert bearer_token_from_header(None) is None


def test_me_returns_profile_and_level(client, make_user, auth):
    user = make_user(name="Carla", xp=25, xp_mensal=25, level=3)

    body = client.get("/api/users/me", headers=auth(user)).json()

    assert body["user"]["id"] == user.id
    assert body["user"]["name"] == "Carla"
    assert body["nivel"]["level"] == 3
    assert body["nivel"]["xp_proximo_nivel"] == 40


def test_me_stats_and_history(client, db, make_user, admin, auth):
    user = make_user(email="carla@example.com")
    client.post("/api/admin/bonificacao", json={"emails": "carla@example.com", "motivo": "Evento", "amount": 12},
                headers=auth(admin))

    stats = client.get("/api/users/me/stats", headers=auth(user)).json()["stats"]
    history = client.get("/api/users/me/xp-history", headers=auth(user)).json()["history"]

    assert stats["xpMensal"] == 12
    assert stats["posicaoGeral"] == 1
    assert stats["quizzesCompletos"] == 0
    assert [h["amount"] for h in history] == [12]
    assert history[0]["description"] == "Evento"


def test_notifications_list(client, make_user, admin, auth):
    user = make_user(email="carla@example.com")
    client.post("/api/admin/bonificacao", json={"emails": "carla@example.com", "motivo": "Evento", "amount": 3},
                headers=auth(admin))

    body = client.get("/api/notificacoes", headers=auth(user)).json()

    assert body["naoLidas"] == 1
    assert body["notificacoes"][0]["titulo"] == "Você recebeu uma bonificação!"


def test_unknown_route_uses_error_body(client):
    resp = client.get("/api/nao-existe")
    assert resp.status_code == 404
    assert "error" in resp.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
