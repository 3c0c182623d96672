from app.ai import generator
from app.challenges import service
from app.challenges.models import Desafio, DesafioAtribuido, DesafioSubmission, UserDesafioProgress
from app.gamification.models import XPLedgerEntry
from app.notifications.models import Notificacao


REPO = "https://github.com/aluno/todo-app"


def _assigned_desafio(db, user, xp=40):
    desafio = Desafio(titulo="API de tarefas", descricao="Crie uma API REST", requisitos=["CRUD"],
                      tecnologia="Node.js", nivel="iniciante", xp=xp)
    db.add(desafio)
    db.flush()
    db.add(DesafioAtribuido(user_id=user.id, desafio_id=desafio.id))
    db.commit()
    db.refresh(desafio)
    return desafio


def test_normalize_github_url():
    assert service.normalize_github_url("https://github.com/aluno/repo.git") == "https://github.com/aluno/repo"
    assert service.normalize_github_url("http://www.github.com/aluno/repo/tree/main") == "https://github.com/aluno/repo"
    assert service.normalize_github_url("https://gitlab.com/aluno/repo") is None
    assert service.normalize_github_url("https://github.com/aluno") is None
    assert service.normalize_github_url("") is None


def test_submit_rejects_invalid_url(client, db, make_user, auth):
    user = make_user()
    desafio = _assigned_desafio(db, user)

    resp = client.post(f"/api/desafios/{desafio.id}/submeter",
                       json={"github_url": "https://example.com/x"}, headers=auth(user))

    assert resp.status_code == 400
    assert db.query(DesafioSubmission).count() == 0


def test_submit_unknown_challenge_is_404(client, make_user, auth):
    user = make_user()
    resp = client.post("/api/desafios/999/submeter", json={"github_url": REPO}, headers=auth(user))
    assert resp.status_code == 404


def test_submit_then_approve_awards_once(client, db, make_user, admin, auth, reload):
    user = make_user()
    desafio = _assigned_desafio(db, user)

    resp = client.post(f"/api/desafios/{desafio.id}/submeter", json={"github_url": REPO + ".git"}, headers=auth(user))
    assert resp.status_code == 200
    submission = resp.json()["submission"]
    assert submission["status"] == "pendente"
    assert submission["github_url"] == REPO

    # Admins hear about new submissions
    assert db.query(Notificacao).filter_by(target_user_id=admin.id).count() == 1

    resp = client.put(f"/api/admin/submissions/{submission['id']}",
                      json={"status": "aprovado", "admin_notes": "Ótimo"}, headers=auth(admin))
    assert resp.status_code == 200
    assert resp.json()["submission"]["status"] == "aprovado"
    assert reload(user).xp == 40

    again = client.put(f"/api/admin/submissions/{submission['id']}",
                       json={"status": "aprovado"}, headers=auth(admin))
    assert again.status_code == 400
    assert reload(user).xp == 40
    assert db.query(Notificacao).filter_by(target_user_id=user.id).count() == 1


def test_rejected_submission_can_be_resubmitted(client, db, make_user, admin, auth):
    user = make_user()
    desafio = _assigned_desafio(db, user)
    sub_id = client.post(f"/api/desafios/{desafio.id}/submeter",
                         json={"github_url": REPO}, headers=auth(user)).json()["submission"]["id"]
    client.put(f"/api/admin/submissions/{sub_id}",
               json={"status": "rejeitado", "admin_notes": "Faltam testes"}, headers=auth(admin))

    resp = client.post(f"/api/desafios/{desafio.id}/submeter",
                       json={"github_url": "https://github.com/aluno/todo-app-v2"}, headers=auth(user))

    body = resp.json()["submission"]
    assert body["id"] == sub_id
    assert body["status"] == "pendente"
    assert body["admin_notes"] is None
    assert body["github_url"].endswith("todo-app-v2")


def test_complete_challenge_is_idempotent(db, make_user, reload):
    user = make_user()
    desafio = _assigned_desafio(db, user)

    assert service.complete_challenge(db, user.id, desafio) is True
    db.commit()
    assert service.complete_challenge(db, user.id, desafio) is False
    db.commit()

    assert reload(user).xp == 40
    assert db.query(XPLedgerEntry).count() == 1
    assert db.query(UserDesafioProgress).one().completo is True


def test_review_requires_admin(client, db, make_user, auth):
    user = make_user()
    desafio = _assigned_desafio(db, user)
    sub_id = client.post(f"/api/desafios/{desafio.id}/submeter",
                         json={"github_url": REPO}, headers=auth(user)).json()["submission"]["id"]

    resp = client.put(f"/api/admin/submissions/{sub_id}", json={"status": "aprovado"}, headers=auth(user))

    assert resp.status_code == 403


def test_review_rejects_unknown_status(client, db, make_user, admin, auth):
    user = make_user()
    desafio = _assigned_desafio(db, user)
    sub_id = client.post(f"/api/desafios/{desafio.id}/submeter",
                         json={"github_url": REPO}, headers=auth(user)).json()["submission"]["id"]

    resp = client.put(f"/api/admin/submissions/{sub_id}", json={"status": "talvez"}, headers=auth(admin))

    assert resp.status_code == 400


def test_list_submissions_filters_by_status(client, db, make_user, admin, auth):
    user = make_user()
    desafio = _assigned_desafio(db, user)
    client.post(f"/api/desafios/{desafio.id}/submeter", json={"github_url": REPO}, headers=auth(user))

    pendentes = client.get("/api/admin/submissions?status=pendente", headers=auth(admin)).json()["submissions"]
    aprovadas = client.get("/api/admin/submissions?status=aprovado", headers=auth(admin)).json()["submissions"]
    invalid = client.get("/api/admin/submissions?status=xyz", headers=auth(admin))

    assert len(pendentes) == 1
    assert pendentes[0]["desafio"]["titulo"] == "API de tarefas"
    assert pendentes[0]["user"]["id"] == user.id
    assert aprovadas == []
    assert invalid.status_code == 400


def test_abandon_pending_challenge_applies_penalty_once(client, db, make_user, auth, reload):
    user = make_user(xp=50, xp_mensal=50, level=4)
    desafio = _assigned_desafio(db, user)
    client.post(f"/api/desafios/{desafio.id}/submeter", json={"github_url": REPO}, headers=auth(user))

    resp = client.post(f"/api/desafios/{desafio.id}/desistir", headers=auth(user))

    assert resp.status_code == 200
    body = resp.json()
    assert body["xp_perdido"] == 20
    assert body["xp_anterior"] == 50
    assert body["xp_atual"] == 30
    assert db.query(DesafioSubmission).one().status == "desistiu"
    assert db.query(DesafioAtribuido).count() == 0

    again = client.post(f"/api/desafios/{desafio.id}/desistir", headers=auth(user))
    assert again.status_code == 400
    assert reload(user).xp == 30


def test_abandon_without_submission_creates_one(client, db, make_user, auth, reload):
    user = make_user(xp=5, xp_mensal=5)
    desafio = _assigned_desafio(db, user)

    resp = client.post(f"/api/desafios/{desafio.id}/desistir", headers=auth(user))

    assert resp.status_code == 200
    assert resp.json()["xp_atual"] == 0
    assert db.query(DesafioSubmission).one().status == "desistiu"
    assert reload(user).xp == 0


def test_abandon_approved_challenge_is_refused(client, db, make_user, admin, auth, reload):
    user = make_user()
    desafio = _assigned_desafio(db, user)
    sub_id = client.post(f"/api/desafios/{desafio.id}/submeter",
                         json={"github_url": REPO}, headers=auth(user)).json()["submission"]["id"]
    client.put(f"/api/admin/submissions/{sub_id}", json={"status": "aprovado"}, headers=auth(admin))

    resp = client.post(f"/api/desafios/{desafio.id}/desistir", headers=auth(user))

    assert resp.status_code == 400
    assert reload(user).xp == 40


def test_abandon_unassigned_challenge_is_404(client, make_user, auth):
    user = make_user()
    resp = client.post("/api/desafios/12345/desistir", headers=auth(user))
    assert resp.status_code == 404


def test_submit_after_abandon_is_refused(client, db, make_user, auth):
    user = make_user()
    desafio = _assigned_desafio(db, user)
    client.post(f"/api/desafios/{desafio.id}/desistir", headers=auth(user))

    resp = client.post(f"/api/desafios/{desafio.id}/submeter", json={"github_url": REPO}, headers=auth(user))

    assert resp.status_code == 400


def test_generate_assigns_challenge(client, db, make_user, auth, monkeypatch):
    user = make_user()

    def fake_generate(tecnologia, nivel):
        return {"titulo": "Landing page", "descricao": "Monte uma landing page", "requisitos": ["Responsiva"]}

    monkeypatch.setattr(generator, "generate_challenge", fake_generate)

    resp = client.post("/api/desafios/gerar", json={"tecnologia": "HTML", "nivel": "iniciante"}, headers=auth(user))

    assert resp.status_code == 200
    desafio = resp.json()["desafio"]
    assert desafio["titulo"] == "Landing page"
    assert desafio["xp"] == 40

    meus = client.get("/api/desafios/meus", headers=auth(user)).json()["desafios"]
    assert [d["id"] for d in meus] == [desafio["id"]]
    assert meus[0]["status"] is None


def test_parse_challenge_json_strips_fences():
    data = generator.parse_challenge_json('```json\n{"titulo": "T", "descricao": "D", "requisitos": ["a", ""]}\n```')
    assert data == {"titulo": "T", "descricao": "D", "requisitos": ["a"]}
