from app.community.models import Pergunta, Resposta, Voto
from app.gamification.models import XPLedgerEntry


def _ask(client, auth, user, titulo="Como centralizar uma div?", conteudo="Já tentei margin auto e não funcionou."):
    resp = client.post("/api/comunidade/perguntas", json={"titulo": titulo, "conteudo": conteudo,
                                                          "categoria": "CSS", "tags": ["css", " "]},
                       headers=auth(user))
    assert resp.status_code == 200
    return resp.json()["pergunta"]


def _answer(client, auth, user, pergunta_id, conteudo="Use display flex no container.", pai=None):
    resp = client.post(f"/api/comunidade/perguntas/{pergunta_id}/responder",
                       json={"conteudo": conteudo, "resposta_pai_id": pai}, headers=auth(user))
    return resp


def test_full_question_lifecycle_reverts_all_xp(client, db, make_user, auth, reload):
    asker = make_user(name="Ana")
    helper = make_user(name="Bruno")

    pergunta = _ask(client, auth, asker)
    assert pergunta["tags"] == ["css"]
    assert reload(asker).xp == 5

    resposta = _answer(client, auth, helper, pergunta["id"]).json()["resposta"]
    assert reload(helper).xp == 1

    accepted = client.post(f"/api/comunidade/respostas/{resposta['id']}/aceitar", headers=auth(asker))
    assert accepted.status_code == 200
    assert accepted.json()["xpGanho"] == 29
    assert reload(helper).xp == 30
    assert reload(helper).level == 3

    detail = client.get(f"/api/comunidade/perguntas/{pergunta['id']}", headers=auth(asker)).json()["pergunta"]
    assert detail["resolvida"] is True
    assert detail["melhor_resposta_id"] == resposta["id"]

    deleted = client.delete(f"/api/comunidade/perguntas/{pergunta['id']}/delete", headers=auth(asker))
    assert deleted.status_code == 200
    revertido = deleted.json()["xpRevertido"]
    assert revertido[asker.id]["xpRevertido"] == 5
    assert revertido[helper.id]["xpRevertido"] == 30

    assert reload(asker).xp == 0
    assert reload(helper).xp == 0
    assert reload(helper).level == 1
    assert db.query(XPLedgerEntry).count() == 0
    assert db.query(Pergunta).count() == 0
    assert db.query(Resposta).count() == 0


def test_question_validation(client, make_user, auth):
    user = make_user()
    short_title = client.post("/api/comunidade/perguntas", json={"titulo": "Oi", "conteudo": "conteúdo suficiente"},
                              headers=auth(user))
    short_body = client.post("/api/comunidade/perguntas", json={"titulo": "Título ok", "conteudo": "curto"},
                             headers=auth(user))
    assert short_title.status_code == 400
    assert short_body.status_code == 400


def test_answer_requires_content_and_existing_question(client, make_user, auth):
    user = make_user()
    pergunta = _ask(client, auth, user)

    assert _answer(client, auth, user, pergunta["id"], conteudo="   ").status_code == 400
    assert _answer(client, auth, user, 999).status_code == 404


def test_comments_award_no_xp(client, db, make_user, auth, reload):
    asker = make_user()
    helper = make_user()
    commenter = make_user()
    pergunta = _ask(client, auth, asker)
    resposta = _answer(client, auth, helper, pergunta["id"]).json()["resposta"]

    resp = _answer(client, auth, commenter, pergunta["id"], conteudo="Boa!", pai=resposta["id"])

    assert resp.status_code == 200
    assert resp.json()["resposta"]["respostaPaiId"] == resposta["id"]
    assert reload(commenter).xp == 0

    detail = client.get(f"/api/comunidade/perguntas/{pergunta['id']}", headers=auth(asker)).json()["pergunta"]
    assert len(detail["respostas"]) == 1
    assert [c["conteudo"] for c in detail["respostas"][0]["comentarios"]] == ["Boa!"]


def test_comment_on_comment_is_rejected(client, make_user, auth):
    user = make_user()
    pergunta = _ask(client, auth, user)
    resposta = _answer(client, auth, user, pergunta["id"]).json()["resposta"]
    comentario = _answer(client, auth, user, pergunta["id"], conteudo="comentário", pai=resposta["id"]).json()["resposta"]

    resp = _answer(client, auth, user, pergunta["id"], conteudo="aninhado", pai=comentario["id"])

    assert resp.status_code == 400


def test_accept_rules(client, make_user, auth, reload):
    asker = make_user()
    helper = make_user()
    other = make_user()
    pergunta = _ask(client, auth, asker)
    own = _answer(client, auth, asker, pergunta["id"]).json()["resposta"]
    resposta = _answer(client, auth, helper, pergunta["id"]).json()["resposta"]
    segunda = _answer(client, auth, other, pergunta["id"]).json()["resposta"]
    comentario = _answer(client, auth, other, pergunta["id"], conteudo="+1", pai=resposta["id"]).json()["resposta"]

    assert client.post(f"/api/comunidade/respostas/{resposta['id']}/aceitar", headers=auth(other)).status_code == 403
    assert client.post(f"/api/comunidade/respostas/{own['id']}/aceitar", headers=auth(asker)).status_code == 400
    assert client.post(f"/api/comunidade/respostas/{comentario['id']}/aceitar", headers=auth(asker)).status_code == 400

    assert client.post(f"/api/comunidade/respostas/{resposta['id']}/aceitar", headers=auth(asker)).status_code == 200
    again = client.post(f"/api/comunidade/respostas/{resposta['id']}/aceitar", headers=auth(asker))
    assert again.status_code == 400
    assert client.post(f"/api/comunidade/respostas/{segunda['id']}/aceitar", headers=auth(asker)).status_code == 400

    assert reload(helper).xp == 30
    assert reload(other).xp == 1


def test_accepted_answer_is_listed_first(client, make_user, auth):
    asker = make_user()
    a = make_user()
    b = make_user()
    pergunta = _ask(client, auth, asker)
    _answer(client, auth, a, pergunta["id"], conteudo="primeira")
    segunda = _answer(client, auth, b, pergunta["id"], conteudo="segunda").json()["resposta"]
    client.post(f"/api/comunidade/respostas/{segunda['id']}/aceitar", headers=auth(asker))

    detail = client.get(f"/api/comunidade/perguntas/{pergunta['id']}", headers=auth(asker)).json()["pergunta"]

    assert [r["conteudo"] for r in detail["respostas"]] == ["segunda", "primeira"]
    assert detail["respostas"][0]["melhorResposta"] is True


def test_delete_answer_reverts_its_xp(client, db, make_user, auth, reload):
    asker = make_user()
    helper = make_user()
    pergunta = _ask(client, auth, asker)
    resposta = _answer(client, auth, helper, pergunta["id"]).json()["resposta"]

    resp = client.delete(f"/api/comunidade/respostas/{resposta['id']}/delete", headers=auth(helper))

    assert resp.status_code == 200
    assert resp.json()["xpRevertido"] == 1
    assert reload(helper).xp == 0
    # The question's own award is untouched
    assert reload(asker).xp == 5


def test_delete_answer_guards(client, make_user, auth):
    asker = make_user()
    helper = make_user()
    pergunta = _ask(client, auth, asker)
    aceita = _answer(client, auth, helper, pergunta["id"]).json()["resposta"]
    comentada = _answer(client, auth, helper, pergunta["id"], conteudo="outra resposta").json()["resposta"]
    _answer(client, auth, asker, pergunta["id"], conteudo="comentário", pai=comentada["id"])
    client.post(f"/api/comunidade/respostas/{aceita['id']}/aceitar", headers=auth(asker))

    assert client.delete(f"/api/comunidade/respostas/{aceita['id']}/delete", headers=auth(asker)).status_code == 403
    assert client.delete(f"/api/comunidade/respostas/{aceita['id']}/delete", headers=auth(helper)).status_code == 400
    assert client.delete(f"/api/comunidade/respostas/{comentada['id']}/delete", headers=auth(helper)).status_code == 400


def test_only_author_or_admin_deletes_question(client, make_user, admin, auth):
    asker = make_user()
    other = make_user()
    pergunta = _ask(client, auth, asker)

    assert client.delete(f"/api/comunidade/perguntas/{pergunta['id']}/delete", headers=auth(other)).status_code == 403
    assert client.delete(f"/api/comunidade/perguntas/{pergunta['id']}/delete", headers=auth(admin)).status_code == 200


def test_votes_toggle(client, db, make_user, auth):
    user = make_user()
    pergunta = _ask(client, auth, user)
    resposta = _answer(client, auth, user, pergunta["id"]).json()["resposta"]

    first = client.post(f"/api/comunidade/perguntas/{pergunta['id']}/votar", headers=auth(user)).json()
    second = client.post(f"/api/comunidade/perguntas/{pergunta['id']}/votar", headers=auth(user)).json()
    on_answer = client.post(f"/api/comunidade/respostas/{resposta['id']}/votar", headers=auth(user)).json()

    assert (first["curtida"], first["votos"]) == (True, 1)
    assert (second["curtida"], second["votos"]) == (False, 0)
    assert (on_answer["curtida"], on_answer["votos"]) == (True, 1)
    assert db.query(Voto).count() == 1


def test_list_and_view_questions(client, make_user, auth):
    user = make_user()
    _ask(client, auth, user, titulo="Dúvida sobre Flexbox")
    outra = _ask(client, auth, user, titulo="Erro no React", conteudo="useEffect roda duas vezes no modo dev")
    _answer(client, auth, user, outra["id"])
    client.post(f"/api/comunidade/perguntas/{outra['id']}/visualizar", headers=auth(user))

    todas = client.get("/api/comunidade/perguntas", headers=auth(user)).json()["perguntas"]
    busca = client.get("/api/comunidade/perguntas?search=react", headers=auth(user)).json()["perguntas"]

    assert len(todas) == 2
    assert [p["titulo"] for p in busca] == ["Erro no React"]
    assert busca[0]["respostas"] == 1
    assert busca[0]["visualizacoes"] == 1


def test_delete_after_monthly_reset_clamps_monthly_xp(client, db, make_user, auth, reload):
    asker = make_user()
    helper = make_user()
    pergunta = _ask(client, auth, asker)
    resposta = _answer(client, auth, helper, pergunta["id"]).json()["resposta"]
    client.post(f"/api/comunidade/respostas/{resposta['id']}/aceitar", headers=auth(asker))

    # New month: monthly totals were reset, all-time totals kept
    reload(asker).xp_mensal = 0
    reload(helper).xp_mensal = 10
    db.commit()

    resp = client.delete(f"/api/comunidade/perguntas/{pergunta['id']}/delete", headers=auth(asker))

    assert resp.status_code == 200
    assert (reload(asker).xp, asker.xp_mensal) == (0, 0)
    assert (reload(helper).xp, helper.xp_mensal) == (0, 0)


def _like(db, make_user, pergunta_id, count):
    for _ in range(count):
        db.add(Voto(user_id=make_user().id, pergunta_id=pergunta_id))
    db.commit()


def test_top_member_needs_fifty_likes(client, db, make_user, auth):
    star = make_user(name="Estrela")
    pergunta = _ask(client, auth, star)
    _like(db, make_user, pergunta["id"], 49)

    below = client.get("/api/comunidade/badges/top-member", headers=auth(star)).json()
    assert (below["userId"], below["totalCurtidas"], below["hasMinimum"]) == (None, 49, False)
    assert client.get("/api/comunidade/badges", headers=auth(star)).json()["badges"] == []

    _like(db, make_user, pergunta["id"], 1)

    top = client.get("/api/comunidade/badges/top-member", headers=auth(star)).json()
    assert (top["userId"], top["totalCurtidas"], top["hasMinimum"]) == (star.id, 50, True)
    mine = client.get("/api/comunidade/badges", headers=auth(star)).json()
    assert mine["userId"] == star.id
    assert mine["badges"] == [{"type": "top_member", "metadata": {"totalCurtidas": 50}}]


def test_only_the_most_liked_author_gets_the_badge(client, db, make_user, auth):
    star = make_user()
    runner_up = make_user()
    _like(db, make_user, _ask(client, auth, star)["id"], 52)
    _like(db, make_user, _ask(client, auth, runner_up)["id"], 51)

    other = client.get(f"/api/comunidade/badges?userId={runner_up.id}", headers=auth(star)).json()
    winner = client.get(f"/api/comunidade/badges?userId={star.id}", headers=auth(runner_up)).json()

    assert other["badges"] == []
    assert winner["badges"][0]["metadata"]["totalCurtidas"] == 52


def test_answer_votes_do_not_count_as_likes(client, db, make_user, auth):
    user = make_user()
    pergunta = _ask(client, auth, user)
    resposta = _answer(client, auth, user, pergunta["id"]).json()["resposta"]
    for _ in range(50):
        db.add(Voto(user_id=make_user().id, resposta_id=resposta["id"]))
    db.commit()

    top = client.get("/api/comunidade/badges/top-member", headers=auth(user)).json()

    assert top["userId"] is None
    assert top["totalCurtidas"] == 0
