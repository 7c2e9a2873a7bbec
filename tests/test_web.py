"""Tests for the Flask JSON API."""

from collections import OrderedDict
from unittest.mock import MagicMock

import pytest

from plantguesser import web
from plantguesser.config import Settings
from plantguesser.inaturalist import INaturalistClient, ObservationFetchError, TaxonDetails
from plantguesser.reference import ReferenceData

from factories import FakeSource, make_observation


@pytest.fixture
def source():
    batch = [make_observation(i, taxon_id=100 + i) for i in range(1, 4)]
    details = {100 + i: TaxonDetails(order="Fagales", family="Fagaceae") for i in range(1, 4)}
    return FakeSource(batches=[batch], details=details)


@pytest.fixture
def client(monkeypatch, reference, source, executor):
    monkeypatch.setattr(web, "reference", reference)
    monkeypatch.setattr(web, "source", source)
    monkeypatch.setattr(web, "enrichment_executor", executor)
    monkeypatch.setattr(web, "games", OrderedDict())
    web.app.config["TESTING"] = True
    with web.app.test_client() as client:
        yield client


def test_health(client):
    data = client.get("/health").get_json()
    assert data["status"] == "ok"
    assert data["reference_loaded"] is True
    assert data["active_games"] == 0


class TestLookups:
    def test_locations(self, client):
        data = client.get("/api/locations?q=as").get_json()
        assert [loc["name"] for loc in data] == ["Asia", "Astoria", "Orcas Island"]
        assert data[0]["type"] == "Continent"

    def test_suggest(self, client):
        assert client.get("/api/suggest/genus?q=ros").get_json() == ["Rosa", "Rosmarinus", "Primrosa"]
        assert client.get("/api/suggest/species?q=quer").get_json() == []

    def test_suggest_unknown_rank(self, client):
        response = client.get("/api/suggest/kingdom?q=a")
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_taxonomy(self, client):
        data = client.get("/api/taxonomy/Quercus").get_json()
        assert data == {"order": "Fagales", "family": "Fagaceae"}
        data = client.get("/api/taxonomy/Pinus").get_json()
        assert data == {"order": None, "family": None}

    def test_lookups_without_data(self, client, monkeypatch):
        monkeypatch.setattr(web, "reference", None)
        assert client.get("/api/locations").status_code == 503
        assert client.get("/api/suggest/genus").status_code == 503


class TestGameFlow:
    def test_requests_without_game_are_rejected(self, client):
        assert client.post("/api/guess", json={"guess": {}}).status_code == 400
        assert client.post("/api/next").status_code == 400
        assert client.get("/api/state").status_code == 400

    def test_start_hides_answer(self, client, source):
        data = client.post("/api/start", json={"game_type": "plants", "location": " Oregon "}).get_json()

        assert data["game_type"] == "plants"
        assert data["location"] == "Oregon"
        assert data["observation"]["photos"]
        assert data["truth"] is None
        assert data["revealed"] is False
        assert source.fetch_calls == [("plants", web.settings.batch_size, "Oregon")]

    def test_unknown_game_type_becomes_both(self, client):
        data = client.post("/api/start", json={"game_type": "birds"}).get_json()
        assert data["game_type"] == "both"

    def test_guess_scores_and_reveals(self, client, executor):
        client.post("/api/start", json={"game_type": "plants"})
        executor.run_all()

        response = client.post("/api/guess", json={"guess": {
            "order": "fagales", "family": "Fagaceae", "genus": "Quercus", "species": "Quercus rubra",
        }})
        data = response.get_json()

        assert response.status_code == 200
        assert data["revealed"] is True
        assert data["truth"]["family"] == "Fagaceae"
        assert data["score"]["earned"] == 6
        assert data["score"]["possible"] == 10
        assert data["score_percent"] == 60

    def test_guess_must_be_object(self, client):
        client.post("/api/start", json={"game_type": "plants"})
        response = client.post("/api/guess", json={"guess": ["Quercus"]})
        assert response.status_code == 400

    def test_next_starts_new_round(self, client):
        first = client.post("/api/start", json={"game_type": "plants"}).get_json()
        client.post("/api/guess", json={"guess": {"genus": "Quercus"}})

        data = client.post("/api/next").get_json()

        assert data["round"] == first["round"] + 1
        assert data["revealed"] is False
        assert data["observation"]["id"] != first["observation"]["id"]
        assert data["total_earned"] == 3

    def test_restart_replaces_game(self, client):
        client.post("/api/start", json={"game_type": "plants"})
        client.post("/api/start", json={"game_type": "fungi"})
        assert len(web.games) == 1

    def test_fetch_error_then_retry(self, client, monkeypatch):
        failing = FakeSource(batches=[ObservationFetchError(502, "bad gateway"), [make_observation(9)]])
        monkeypatch.setattr(web, "source", failing)

        data = client.post("/api/start", json={"game_type": "fungi"}).get_json()
        assert data["error"] == "iNaturalist API error 502: bad gateway"
        assert data["observation"] is None

        data = client.post("/api/next").get_json()
        assert data["error"] is None
        assert data["observation"]["id"] == 9

    def test_empty_location(self, client, monkeypatch):
        monkeypatch.setattr(web, "source", FakeSource(batches=[[]]))
        data = client.post("/api/start", json={"game_type": "plants", "location": "Nowhere"}).get_json()
        assert data["empty"] is True
        assert data["error"].startswith("No observations found")

    def test_start_without_source(self, client, monkeypatch):
        monkeypatch.setattr(web, "source", None)
        assert client.post("/api/start", json={}).status_code == 503


def test_load_data(monkeypatch, data_dir):
    monkeypatch.setattr(web, "reference", None)
    monkeypatch.setattr(web, "source", None)

    web.load_data(Settings(data_dir=data_dir, api_base="https://api.test/v1"))

    assert isinstance(web.reference, ReferenceData)
    assert isinstance(web.source, INaturalistClient)
    assert web.source.api_base == "https://api.test/v1"


class TestGameStorage:
    def test_games_are_capped_least_recently_used_first(self, client, monkeypatch):
        monkeypatch.setattr(web.settings, "max_games", 3)
        monkeypatch.setattr(
            web, "source", FakeSource(batches=[[make_observation(i)] for i in range(1, 11)])
        )
        browsers = [web.app.test_client() for _ in range(5)]

        for browser in browsers[:3]:
            browser.post("/api/start", json={"game_type": "plants"})
        # Touch the oldest game so it is no longer least recently used
        assert browsers[0].get("/api/state").status_code == 200

        for browser in browsers[3:]:
            browser.post("/api/start", json={"game_type": "plants"})

        assert len(web.games) == 3
        assert browsers[0].get("/api/state").status_code == 200
        assert browsers[1].get("/api/state").status_code == 400
        assert browsers[2].get("/api/state").status_code == 400
        assert browsers[4].get("/api/state").status_code == 200

    def test_evicted_games_are_closed(self, monkeypatch):
        monkeypatch.setattr(web, "games", OrderedDict())
        monkeypatch.setattr(web.settings, "max_games", 2)
        controllers = [MagicMock() for _ in range(3)]

        for i, controller in enumerate(controllers):
            web.store_game(f"game-{i}", controller)

        assert list(web.games) == ["game-1", "game-2"]
        controllers[0].close.assert_called_once_with()
        controllers[1].close.assert_not_called()

    def test_restart_closes_previous_game(self, client, monkeypatch):
        client.post("/api/start", json={"game_type": "plants"})
        (old,) = web.games.values()
        close = MagicMock()
        monkeypatch.setattr(old, "close", close)

        client.post("/api/start", json={"game_type": "fungi"})

        close.assert_called_once_with()
        assert old not in web.games.values()
