from __future__ import annotations

from hopefund.services.content import slugify
from hopefund.services.listing import group_by, paginate_records, search_records, sort_records

from .conftest import bearer

ROWS = [
    {"id": 1, "name": "Water wells", "city": "Nairobi", "raised": 300},
    {"id": 2, "name": "school books", "city": "Lima", "raised": None},
    {"id": 3, "name": "Clinic", "city": "Nairobi", "raised": 120},
    {"id": 4, "name": "Food bank", "city": "Lima", "raised": 120},
]


def test_search_records_is_case_insensitive_over_fields():
    assert [r["id"] for r in search_records(ROWS, "NAIROBI", ["city"])] == [1, 3]
    assert [r["id"] for r in search_records(ROWS, "oo", ["name", "city"])] == [2, 4]
    assert search_records(ROWS, "   ", ["name"]) == ROWS


def test_sort_records_is_stable_and_puts_none_last():
    asc = sort_records(ROWS, "raised")
    assert [r["id"] for r in asc] == [3, 4, 1, 2]
    by_name = sort_records(ROWS, "name", "desc")
    assert [r["name"] for r in by_name] == ["Water wells", "school books", "Food bank", "Clinic"]


def test_group_by():
    groups = group_by(ROWS, "city")
    assert sorted(groups) == ["Lima", "Nairobi"]
    assert [r["id"] for r in groups["Lima"]] == [2, 4]


def test_paginate_records():
    window, meta = paginate_records(range(25), page=3, per_page=10)
    assert window == [20, 21, 22, 23, 24]
    assert meta == {"page": 3, "per_page": 10, "total": 25, "pages": 3}

    window, meta = paginate_records([], page=0, per_page=0)
    assert window == []
    assert meta["pages"] == 0 and meta["page"] == 1


def test_slugify():
    assert slugify("Hello, World!  Again") == "hello-world-again"
    assert slugify("--Already-slugged--") == "already-slugged"


# ─────────────────────────────────────────────────────────────
# Admin list endpoints
# ─────────────────────────────────────────────────────────────
def _faq(client, headers, ordering, question, status=1):
    return client.post(
        "/api/admin/v1/faqs/create",
        json={"question": question, "answer": "An answer long enough.", "ordering": ordering, "status": status},
        headers=headers,
    )


def test_faq_ordering_must_be_unique(client, super_admin):
    h = bearer(super_admin["token"])
    assert _faq(client, h, 1, "How do I donate?").status_code == 201

    resp = _faq(client, h, 1, "Can I donate twice?")
    assert resp.status_code == 422
    err = resp.get_json()["error"]
    assert err["fields"]["ordering"] == ["This ordering position is already taken"]

    assert _faq(client, h, 3, "Can I donate twice?").status_code == 201
    body = client.get("/api/admin/v1/faqs", headers=h).get_json()
    assert body["next_ordering"] == 2


def test_faq_update_keeps_its_own_ordering(client, super_admin):
    h = bearer(super_admin["token"])
    faq_id = _faq(client, h, 1, "How do I donate?").get_json()["data"]["id"]
    resp = client.post(
        f"/api/admin/v1/faqs/edit/{faq_id}",
        json={"question": "How do I donate online?", "answer": "Use the checkout.", "ordering": 1, "status": 1},
        headers=h,
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["question"] == "How do I donate online?"


def test_faq_validation_messages(client, super_admin):
    resp = client.post(
        "/api/admin/v1/faqs/create",
        json={"question": "Why", "answer": "ok", "ordering": 0, "status": 5},
        headers=bearer(super_admin["token"]),
    )
    assert resp.status_code == 422
    errors = resp.get_json()["error"]["errors"]
    assert "Question must be at least 5 characters." in errors
    assert "Answer must be at least 5 characters long" in errors
    assert "Ordering must be a positive integer" in errors
    assert "Status must be either 0 (inactive) or 1 (active)" in errors


def test_faq_text_is_trimmed_before_validation(client, super_admin):
    h = bearer(super_admin["token"])
    resp = client.post(
        "/api/admin/v1/faqs/create",
        json={"question": "        ", "answer": " \t\n   ", "ordering": 1, "status": 1},
        headers=h,
    )
    assert resp.status_code == 422
    assert resp.get_json()["error"]["errors"] == [
        "Question must be at least 5 characters.",
        "Answer must be at least 5 characters long",
    ]

    resp = client.post(
        "/api/admin/v1/faqs/create",
        json={"question": "   How do I give?  ", "answer": "  Through the checkout.\n", "ordering": 1, "status": 1},
        headers=h,
    )
    assert resp.status_code == 201
    faq = resp.get_json()["data"]
    assert (faq["question"], faq["answer"]) == ("How do I give?", "Through the checkout.")


def test_admin_listing_search_sort_and_paginate(client, super_admin):
    h = bearer(super_admin["token"])
    for i, q in enumerate(["Refund policy?", "Tax receipts?", "Refund timing?", "Monthly giving?"], start=1):
        _faq(client, h, i, q, status=0 if i == 4 else 1)

    body = client.get("/api/admin/v1/faqs?q=refund", headers=h).get_json()
    assert [f["question"] for f in body["data"]] == ["Refund policy?", "Refund timing?"]
    assert body["meta"]["total"] == 2

    body = client.get("/api/admin/v1/faqs?sort=ordering&direction=desc&per_page=3&page=2", headers=h).get_json()
    assert [f["ordering"] for f in body["data"]] == [1]
    assert body["meta"] == {"page": 2, "per_page": 3, "total": 4, "pages": 2}

    body = client.get("/api/admin/v1/faqs?status=0", headers=h).get_json()
    assert [f["question"] for f in body["data"]] == ["Monthly giving?"]

    public = client.get("/api/faqs").get_json()["data"]
    assert len(public) == 3


def test_blog_slugs_are_generated_and_unique(client, super_admin):
    h = bearer(super_admin["token"])
    post = {"title": "Our first well", "content": "A long enough body of blog content.", "status": "published"}

    first = client.post("/api/admin/v1/blogs/create", json=post, headers=h).get_json()["data"]
    second = client.post("/api/admin/v1/blogs/create", json=post, headers=h).get_json()["data"]
    assert first["slug"] == "our-first-well"
    assert second["slug"] == "our-first-well-2"
    assert first["published_at"] is not None

    resp = client.post("/api/admin/v1/blogs/create", json={**post, "slug": "our-first-well"}, headers=h)
    assert resp.status_code == 422

    assert client.get("/api/blogs/our-first-well").status_code == 200
    assert client.get("/api/blogs").get_json()["meta"]["total"] == 2


def test_draft_blogs_are_hidden_from_storefront(client, super_admin):
    h = bearer(super_admin["token"])
    client.post(
        "/api/admin/v1/blogs/create",
        json={"title": "Work in progress", "content": "Not ready to be read by anyone yet."},
        headers=h,
    )
    assert client.get("/api/blogs/work-in-progress").status_code == 404
    assert client.get("/api/admin/v1/blogs?status=draft", headers=h).get_json()["meta"]["total"] == 1


def test_menu_ordering_is_scoped_to_parent(client, super_admin):
    h = bearer(super_admin["token"])
    parent = client.post(
        "/api/admin/v1/menus/create",
        json={"name": "About", "slug": "about", "ordering": 1, "status": 1},
        headers=h,
    ).get_json()["data"]
    resp = client.post(
        "/api/admin/v1/menus/create",
        json={"name": "Team", "slug": "team", "ordering": 1, "status": 1, "parent_id": parent["id"]},
        headers=h,
    )
    assert resp.status_code == 201

    tree = client.get("/api/menus").get_json()["data"]
    assert [m["name"] for m in tree] == ["About"]
    assert [c["name"] for c in tree[0]["children"]] == ["Team"]
