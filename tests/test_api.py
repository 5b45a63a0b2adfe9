def rankings_payload(pairs):
    return {"rankings": [{"teamId": team_id, "rank": rank} for team_id, rank in pairs]}


def test_healthz(client):
    assert client.get("/healthz").data == b"ok"


def test_unknown_route_is_json_404(client):
    resp = client.get("/no-such-page")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Not found"}


# -------------------------
# Auth
# -------------------------
def test_register_login_me_logout(client):
    resp = client.post("/auth/register", json={
        "username": "newvoter", "email": "new@example.com", "password": "secret1",
    })
    assert resp.status_code == 201
    assert resp.get_json()["user"]["name"] == "newvoter"

    assert client.get("/auth/me").status_code == 401

    resp = client.post("/auth/login", json={"username": "new@example.com", "password": "secret1"})
    assert resp.status_code == 200

    me = client.get("/auth/me").get_json()["user"]
    assert me["email"] == "new@example.com"

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_register_validation(client, user):
    assert client.post("/auth/register", json={"username": "ab", "email": "a@b.c", "password": "secret1"}).status_code == 400
    assert client.post("/auth/register", json={"username": "abc", "email": "nope", "password": "secret1"}).status_code == 400
    assert client.post("/auth/register", json={"username": "abc", "email": "a@b.c", "password": "123"}).status_code == 400
    assert client.post("/auth/register", json={
        "username": "abc", "email": "a@b.c", "password": "secret1", "password_confirm": "secret2",
    }).status_code == 400
    dup = client.post("/auth/register", json={"username": user.username, "email": "x@y.z", "password": "secret1"})
    assert dup.status_code == 409


def test_login_with_bad_password(client, user):
    resp = client.post("/auth/login", json={"username": user.username, "password": "wrong"})
    assert resp.status_code == 401


# -------------------------
# Catalog
# -------------------------
def test_teams_are_alphabetical(client, teams):
    names = [t["name"] for t in client.get("/teams").get_json()["teams"]]
    assert names == sorted(names)
    assert len(names) == 30


def test_current_period(client, open_period):
    resp = client.get("/ballot-periods/current")
    assert resp.headers["Cache-Control"].startswith("no-store")
    assert resp.get_json()["period"]["period_name"] == "Week 5"

    periods = client.get(f"/ballot-periods?season={open_period.season}").get_json()["periods"]
    assert [p["period"] for p in periods] == [5]


def test_no_current_period(client):
    assert client.get("/ballot-periods/current").get_json() == {"period": None}


# -------------------------
# Ballot
# -------------------------
def test_ballot_requires_login(client, teams):
    assert client.get("/ballot").status_code == 401
    assert client.put("/ballot", json=rankings_payload([(1, 1)])).status_code == 401
    assert client.post("/ballot", json=rankings_payload([(1, 1)])).status_code == 401


def test_empty_draft_ballot(auth_client):
    resp = auth_client.get("/ballot")
    assert resp.status_code == 200
    assert resp.get_json() == {"rankings": []}


def test_save_and_load_draft(auth_client):
    resp = auth_client.put("/ballot", json=rankings_payload([(2, 1), (7, 2), (11, 25)]))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["message"] == "Ballot saved successfully"
    assert isinstance(body["ballotId"], int)

    rankings = auth_client.get("/ballot").get_json()["rankings"]
    assert [(r["teamId"], r["rank"]) for r in rankings] == [(2, 1), (7, 2), (11, 25)]
    assert rankings[0]["team"]["name"] == "Team02"


def test_save_replaces_previous_draft(auth_client):
    auth_client.put("/ballot", json=rankings_payload([(1, 1), (2, 2), (3, 3)]))
    auth_client.put("/ballot", json=rankings_payload([(4, 1)]))

    rankings = auth_client.get("/ballot").get_json()["rankings"]
    assert [(r["teamId"], r["rank"]) for r in rankings] == [(4, 1)]


def test_save_rejects_bad_payloads(auth_client):
    assert auth_client.put("/ballot", json={"rankings": []}).status_code == 400
    assert auth_client.put("/ballot", json={}).status_code == 400
    assert auth_client.put("/ballot", data="not json").status_code == 400

    too_many = rankings_payload([(i, i) for i in range(1, 27)])
    resp = auth_client.put("/ballot", json=too_many)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Maximum 25 teams can be ranked"

    assert auth_client.put("/ballot", json=rankings_payload([(1, 1), (1, 2)])).status_code == 400
    assert auth_client.put("/ballot", json=rankings_payload([(999, 1)])).status_code == 400


def test_submit_without_open_period(auth_client):
    resp = auth_client.post("/ballot", json=rankings_payload([(1, 1)]))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "No active ballot period found"


def test_submit_final_ballot(auth_client, open_period):
    auth_client.put("/ballot", json=rankings_payload([(1, 1)]))

    resp = auth_client.post("/ballot", json=rankings_payload([(3, 1), (4, 2)]))
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Ballot submitted successfully"

    final = auth_client.get("/ballot/final").get_json()
    assert final["period"]["id"] == open_period.id
    assert [r["teamId"] for r in final["rankings"]] == [3, 4]

    draft = auth_client.get("/ballot").get_json()["rankings"]
    assert [r["teamId"] for r in draft] == [1]


def test_final_ballot_with_no_period(auth_client):
    assert auth_client.get("/ballot/final").get_json() == {"rankings": [], "period": None}
