from app.ai import generator
from app.gamification.models import XPLedgerEntry
from app.quizzes.models import Quiz, UserQuizProgress
from app.quizzes.service import quiz_xp_for_score, round_half_up


QUIZ_TEXT = """1. O que é uma variável?
A) Um espaço nomeado para guardar valores
B) Um tipo de loop
R: A
---
2. Qual palavra define uma função em Python?
A) func
B) def
C) function
R: B
"""


def _make_quiz(db, xp=20, tecnologia="Python", nivel="iniciante", titulo="Quiz de Python"):
    quiz = Quiz(titulo=titulo, tecnologia=tecnologia, nivel=nivel, xp=xp, perguntas=[], disponivel=True)
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    return quiz


def test_rounding_is_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert quiz_xp_for_score(100, 20) == 20
    assert quiz_xp_for_score(50, 20) == 10
    assert quiz_xp_for_score(12.5, 20) == 3


def test_full_score_awards_max_xp(client, db, make_user, auth, reload):
    user = make_user()
    quiz = _make_quiz(db)

    resp = client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 100}, headers=auth(user))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["xpGanho"] == 20
    assert reload(user).xp == 20
    assert user.level == 3


def test_half_score_awards_half(client, db, make_user, auth, reload):
    user = make_user()
    quiz = _make_quiz(db)

    resp = client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 50}, headers=auth(user))

    assert resp.json()["xpGanho"] == 10
    assert reload(user).xp == 10


def test_every_attempt_is_its_own_award(client, db, make_user, auth, reload):
    user = make_user()
    quiz = _make_quiz(db)

    client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 50}, headers=auth(user))
    resp = client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 100}, headers=auth(user))

    assert resp.json()["tentativas"] == 2
    assert resp.json()["melhorPontuacao"] == 100
    assert reload(user).xp == 30
    kinds = sorted(e.kind for e in db.query(XPLedgerEntry).all())
    assert len(kinds) == 2
    assert kinds[0].startswith("tentativa-1-")
    assert kinds[1].startswith("tentativa-2-")


def test_attempts_reading_the_same_counter_both_pay(client, db, make_user, auth, reload):
    user = make_user()
    quiz = _make_quiz(db)
    client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 100}, headers=auth(user))

    # A concurrent attempt that read the counter before the first one committed
    progress = db.query(UserQuizProgress).filter_by(user_id=user.id, quiz_id=quiz.id).one()
    progress.tentativas = 0
    db.commit()
    resp = client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 100}, headers=auth(user))

    assert resp.json()["xpGanho"] == 20
    assert reload(user).xp == 40
    kinds = [e.kind for e in db.query(XPLedgerEntry).all()]
    assert len(set(kinds)) == 2
    assert all(k.startswith("tentativa-1-") for k in kinds)


def test_zero_score_writes_no_ledger_row(client, db, make_user, auth):
    user = make_user()
    quiz = _make_quiz(db)

    resp = client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 0}, headers=auth(user))

    assert resp.status_code == 200
    assert resp.json()["xpGanho"] == 0
    assert db.query(XPLedgerEntry).count() == 0
    progress = db.query(UserQuizProgress).filter_by(user_id=user.id, quiz_id=quiz.id).one()
    assert progress.tentativas == 1


def test_invalid_score_is_rejected(client, db, make_user, auth):
    user = make_user()
    quiz = _make_quiz(db)

    for bad in (101, -1, "abc", None):
        resp = client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": bad}, headers=auth(user))
        assert resp.status_code == 400
        assert "error" in resp.json()


def test_unknown_quiz_is_404(client, make_user, auth):
    user = make_user()
    resp = client.post("/api/quiz/999/completar", json={"pontuacao": 80}, headers=auth(user))
    assert resp.status_code == 404


def test_list_shows_progress(client, db, make_user, auth):
    user = make_user()
    quiz = _make_quiz(db)
    client.post(f"/api/quiz/{quiz.id}/completar", json={"pontuacao": 80}, headers=auth(user))

    resp = client.get("/api/quiz", headers=auth(user))

    quizzes = resp.json()["quizzes"]
    assert len(quizzes) == 1
    assert quizzes[0]["completo"] is True
    assert quizzes[0]["melhorPontuacao"] == 80


def test_generate_uses_ai_and_parser(client, db, make_user, auth, monkeypatch):
    user = make_user()
    calls = []

    def fake_generate(tecnologia, nivel):
        calls.append((tecnologia, nivel))
        return QUIZ_TEXT

    monkeypatch.setattr(generator, "generate_quiz_text", fake_generate)

    resp = client.post("/api/quiz/gerar", json={"tecnologia": "Python", "nivel": "iniciante"}, headers=auth(user))

    assert resp.status_code == 200
    body = resp.json()
    assert body["reutilizado"] is False
    assert len(body["quiz"]["perguntas"]) == 2
    assert body["quiz"]["xp"] == 20
    assert calls == [("Python", "iniciante")]


def test_generate_reuses_uncompleted_quiz(client, db, make_user, auth, monkeypatch):
    user = make_user()
    quiz = _make_quiz(db)

    def fail(*args, **kwargs):
        raise AssertionError("AI should not be called")

    monkeypatch.setattr(generator, "generate_quiz_text", fail)

    resp = client.post("/api/quiz/gerar", json={"tecnologia": "Python", "nivel": "iniciante"}, headers=auth(user))

    assert resp.json()["reutilizado"] is True
    assert resp.json()["quiz"]["id"] == quiz.id


def test_generate_rejects_unknown_topic(client, make_user, auth):
    user = make_user()
    resp = client.post("/api/quiz/gerar", json={"tecnologia": "COBOL", "nivel": "iniciante"}, headers=auth(user))
    assert resp.status_code == 400


def test_generate_without_ai_key_is_503(client, make_user, auth):
    user = make_user()
    resp = client.post("/api/quiz/gerar", json={"tecnologia": "Python", "nivel": "avancado"}, headers=auth(user))
    assert resp.status_code == 503


def test_generate_timeout_is_504(client, make_user, auth, monkeypatch):
    user = make_user()

    def slow(*args, **kwargs):
        raise generator.AIGenerationTimeout()

    monkeypatch.setattr(generator, "generate_quiz_text", slow)

    resp = client.post("/api/quiz/gerar", json={"tecnologia": "Python", "nivel": "avancado"}, headers=auth(user))
    assert resp.status_code == 504
    assert "Tente novamente" in resp.json()["error"]
