"""Tests for conditional GET support."""

import httpx
import pytest
from fastapi import FastAPI, Request

from app.core.etag import compute_etag, etag_response
from app.core.responses import CamelModel


class _Song(CamelModel):
    id: int
    song_name: str


def _app() -> FastAPI:
    app = FastAPI()

    @app.get("/songs/{song_id}")
    async def get_song(song_id: int, request: Request):
        return etag_response(request, _Song(id=song_id, song_name="Blue in Green"))

    return app


@pytest.fixture
async def http():
    transport = httpx.ASGITransport(app=_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestComputeEtag:
    def test_quoted_and_deterministic(self):
        tag = compute_etag("/songs/1", b"{}")
        assert tag.startswith('"') and tag.endswith('"')
        assert tag == compute_etag("/songs/1", b"{}")

    def test_path_is_part_of_the_tag(self):
        """Identical bodies under different URLs must not share a validator."""
        assert compute_etag("/songs/1", b"{}") != compute_etag("/songs/2", b"{}")


class TestEtagResponse:
    async def test_first_request_returns_body_and_etag(self, http):
        response = await http.get("/songs/1")

        assert response.status_code == 200
        assert response.json() == {"id": 1, "songName": "Blue in Green"}
        assert response.headers["etag"]

    async def test_matching_if_none_match_is_304(self, http):
        first = await http.get("/songs/1")
        etag = first.headers["etag"]

        second = await http.get("/songs/1", headers={"If-None-Match": etag})

        assert second.status_code == 304
        assert second.content == b""
        assert second.headers["etag"] == etag

    async def test_tag_list_and_wildcard_match(self, http):
        etag = (await http.get("/songs/1")).headers["etag"]

        listed = await http.get("/songs/1", headers={"If-None-Match": f'"x", {etag}'})
        wildcard = await http.get("/songs/1", headers={"If-None-Match": "*"})

        assert listed.status_code == 304
        assert wildcard.status_code == 304

    async def test_stale_tag_gets_full_response(self, http):
        response = await http.get("/songs/1", headers={"If-None-Match": '"stale"'})
        assert response.status_code == 200
