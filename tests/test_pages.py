from __future__ import annotations

import json

import pytest

from hopefund.errors import ValidationError
from hopefund.services.content import parse_components

from .conftest import bearer, make_admin

HERO = {"id": "hero-a", "type": "hero", "content": {"title": "Give water", "height": "large"}}
TEXT = {"type": "text", "content": {"body": "Every well serves a village."}}


def _page(**overrides):
    data = {"title": "About our wells", "status": 1, "content_data": [HERO, TEXT]}
    data.update(overrides)
    return data


def test_parse_components_normalizes():
    out = parse_components([HERO, TEXT])
    assert [c["type"] for c in out] == ["hero", "text"]
    assert out[0]["id"] == "hero-a"
    assert out[1]["id"] == "text-2"
    assert parse_components(json.dumps([{"type": "spacer"}])) == [{"id": "spacer-1", "type": "spacer", "content": {}}]
    assert parse_components([]) == []


@pytest.mark.parametrize(
    "raw, message",
    [
        (None, "content_data is required"),
        ({"type": "hero"}, "content_data must be an array"),
        ("[not json", "content_data must be valid JSON"),
        ([{"type": "marquee"}], "Component 1: unknown component type 'marquee'"),
        ([HERO, {"type": "text", "content": "plain"}], "Component 2: content must be an object"),
    ],
)
def test_parse_components_rejects(raw, message):
    with pytest.raises(ValidationError) as exc:
        parse_components(raw)
    assert exc.value.errors == [message]


def test_page_builder_crud_and_public_view(client, super_admin):
    h = bearer(super_admin["token"])
    resp = client.post("/api/admin/v1/page-builder/create", json=_page(meta_title="Wells"), headers=h)
    assert resp.status_code == 201, resp.get_json()
    page = resp.get_json()["data"]
    assert page["slug"] == "about-our-wells"
    assert [c["type"] for c in page["content_data"]] == ["hero", "text"]

    listing = client.get("/api/admin/v1/page-builder?q=wells", headers=h).get_json()
    assert listing["meta"]["total"] == 1
    assert listing["data"][0]["components"] == 2
    assert "content_data" not in listing["data"][0]

    public = client.get("/api/page-builder/view/about-our-wells").get_json()["data"]
    assert public["meta_title"] == "Wells"
    assert public["content_data"][0]["content"]["title"] == "Give water"

    resp = client.put(
        f"/api/admin/v1/page-builder/update/{page['id']}",
        json=_page(title="About our wells", content_data=[TEXT], status=0),
        headers=h,
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["slug"] == "about-our-wells"
    assert client.get(f"/api/admin/v1/page-builder/edit/{page['id']}", headers=h).get_json()["data"]["content_data"][0]["type"] == "text"
    # inactive pages are hidden from the site
    assert client.get("/api/page-builder/view/about-our-wells").status_code == 404

    assert client.delete(f"/api/admin/v1/page-builder/delete/{page['id']}", headers=h).status_code == 200
    assert client.get(f"/api/admin/v1/page-builder/edit/{page['id']}", headers=h).status_code == 404


def test_page_slug_rules(client, super_admin):
    h = bearer(super_admin["token"])
    client.post("/api/admin/v1/page-builder/create", json=_page(), headers=h)
    second = client.post("/api/admin/v1/page-builder/create", json=_page(), headers=h).get_json()["data"]
    assert second["slug"] == "about-our-wells-2"

    resp = client.post("/api/admin/v1/page-builder/create", json=_page(slug="About Our Wells"), headers=h)
    assert resp.status_code == 422
    assert resp.get_json()["error"]["fields"]["slug"] == ["This slug is already in use."]


def test_page_validation(client, super_admin):
    h = bearer(super_admin["token"])
    resp = client.post("/api/admin/v1/page-builder/create", json=_page(title="   ", meta_title="x" * 61), headers=h)
    assert resp.status_code == 422
    assert resp.get_json()["error"]["errors"] == [
        "Page title must be at least 2 characters.",
        "Meta title must not exceed 60 characters.",
    ]

    resp = client.post("/api/admin/v1/page-builder/create", json=_page(content_data=[{"type": "iframe"}]), headers=h)
    assert resp.status_code == 422
    assert resp.get_json()["error"]["fields"]["content_data"] == ["Component 1: unknown component type 'iframe'"]


def test_page_builder_requires_page_permissions(app, client):
    viewer = make_admin(app, "pages@example.com", "Page Viewer", ["page_view"])
    h = bearer(viewer["token"])
    assert client.get("/api/admin/v1/page-builder", headers=h).status_code == 200
    resp = client.post("/api/admin/v1/page-builder/create", json=_page(), headers=h)
    assert resp.status_code == 403
    assert resp.get_json()["error"]["permission"] == "page_create"
