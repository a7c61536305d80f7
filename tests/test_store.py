"""Tests for the JSON file store and the client directory."""

import json
from datetime import date
from unittest.mock import patch

import pytest

from evoliz_client import ClientDirectory, EvolizError, JsonFileStore
from tests.helpers import BASE_URL, make_response


class TestJsonFileStore:

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "missing.json")
        assert len(store) == 0
        assert store.get("a") is None
        assert store.get("a", "fallback") == "fallback"
        assert not store.has("a")

    def test_set_persists_to_disk(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        store = JsonFileStore(path)
        store.set("a", {"clientid": 1})
        assert json.loads(path.read_text()) == {"a": {"clientid": 1}}
        assert JsonFileStore(path).get("a") == {"clientid": 1}
        assert "a" in store

    def test_delete(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set("a", 1)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert JsonFileStore(store.path).has("a") is False

    def test_rejects_non_object_file(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            JsonFileStore(path)

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set("a", 1)
        store.set("b", 2)
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_failed_set_leaves_store_unchanged(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set("a", 1)
        with pytest.raises(TypeError):
            store.set("bad", date(2024, 1, 1))
        assert not store.has("bad")
        assert JsonFileStore(store.path).get("bad") is None

        store.set("b", 2)
        assert json.loads(store.path.read_text()) == {"a": 1, "b": 2}
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_failed_delete_keeps_key(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set("a", 1)
        with patch("evoliz_client.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.delete("a")
        assert store.get("a") == 1
        assert store.delete("a") is True

    def test_returned_values_are_copies(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        record = {"clientid": 1}
        store.set("a", record)
        record["clientid"] = 2
        fetched = store.get("a")
        fetched["clientid"] = 3
        assert store.get("a") == {"clientid": 1}


class TestClientDirectory:

    @pytest.fixture
    def directory(self, client, tmp_path):
        return ClientDirectory(
            client,
            JsonFileStore(tmp_path / "clients.json"),
            defaults={"address": {"postcode": "83130", "town": "La Garde", "iso2": "FR"}},
        )

    def test_creates_client_once(self, directory, mock_request):
        mock_request.return_value = make_response(201, {"clientid": 9876})
        first = directory.get_or_create("cust-1", "Triiptic", "billing@example.com")
        second = directory.get_or_create("cust-1", "Triiptic", "billing@example.com")

        assert first == second == {
            "clientid": 9876,
            "name": "Triiptic",
            "email": "billing@example.com",
        }
        first["clientid"] = 0
        assert directory.get_or_create("cust-1", "Triiptic", "billing@example.com")["clientid"] == 9876
        assert mock_request.call_count == 1
        kwargs = mock_request.call_args.kwargs
        assert kwargs["url"] == BASE_URL + "/v1/clients"
        assert kwargs["json"] == {
            "type": "Particulier",
            "name": "Triiptic",
            "address": {"postcode": "83130", "town": "La Garde", "iso2": "FR"},
        }

    def test_extra_fields_override_defaults(self, directory, mock_request):
        mock_request.return_value = make_response(201, {"clientid": 1})
        directory.get_or_create("cust-2", "ACME", "a@example.com", type="Professionnel")
        assert mock_request.call_args.kwargs["json"]["type"] == "Professionnel"

    def test_missing_client_id_raises(self, directory, mock_request):
        mock_request.return_value = make_response(201, {"name": "ACME"})
        with pytest.raises(EvolizError):
            directory.get_or_create("cust-3", "ACME", "a@example.com")
        assert not directory.store.has("cust-3")
