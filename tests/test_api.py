import requests

import database
from conftest import auth_header


class FakeGeocodeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self.payload


def _geocode_ok(monkeypatch):
    payload = {"status": "OK", "results": [{"geometry": {"location": {"lat": 40.4168, "lng": -3.7038}}}]}
    monkeypatch.setattr(requests, "get", lambda *args, **kwargs: FakeGeocodeResponse(payload))


def _make_admin(store, signup):
    admin = signup("admin@example.com")
    store[database.USERS].update_one({"_id": admin["user"]["uid"]}, {"$set": {"role": "admin"}})
    return admin


def _setup_restaurant(client, token, monkeypatch):
    _geocode_ok(monkeypatch)
    headers = auth_header(token)
    steps = [
        ("basic", {"restaurantName": "Pizza Verde", "description": "Vegetarian pizza", "phone": "+34 600 000 000",
                   "cuisine": ["Italian"], "dietaryOptions": ["Vegetarian"]}),
        ("location", {"address": {"street": "Gran Via 2", "city": "Madrid", "state": "Madrid",
                                  "postalCode": "28013", "country": "ES"}}),
        ("schedule", {"schedule": {"monday": {"closed": True}}}),
        ("menu", {"categories": [
            {"name": "Pizze", "items": [
                {"name": "Margherita", "price": 9.5, "dietaryTags": ["Vegetarian"], "allergens": ["Dairy", "Wheat"]},
                {"name": "Diavola", "price": 11, "spicyLevel": 3, "allergens": ["Wheat"]},
            ]},
            {"name": "Insalate", "items": [{"name": "Caprese", "price": 8, "dietaryTags": ["Vegetarian", "Gluten-Free"]}]},
        ]}),
    ]
    state = None
    for step_id, data in steps:
        resp = client.post(f"/restaurant/setup/{step_id}", json=data, headers=headers)
        assert resp.status_code == 200, resp.text
        state = resp.json()
    return state["restaurantId"]


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "Restaurant Discovery API"}
    health = client.get("/health").json()
    assert health["database"] == "connected"


def test_signup_signin_me_and_signout(client, signup):
    created = signup("ana@example.com", display_name="Ana")
    assert created["user"]["role"] == "customer"
    assert created["user"]["displayName"] == "Ana"

    resp = client.post("/auth/signin", json={"email": "ana@example.com", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.json()["token"]

    me = client.get("/auth/me", headers=auth_header(token)).json()
    assert me["email"] == "ana@example.com"

    assert client.post("/auth/signout", headers=auth_header(token)).json() == {"ok": True}
    resp = client.get("/auth/me", headers=auth_header(token))
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Session has been signed out"}


def test_bad_credentials_and_missing_token(client, signup):
    signup("ana@example.com")
    resp = client.post("/auth/signin", json={"email": "ana@example.com", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"
    assert client.get("/profile").status_code == 401


def test_duplicate_signup(client, signup):
    signup("ana@example.com")
    resp = client.post("/auth/signup", json={"email": "ana@example.com", "password": "secret123"})
    assert resp.status_code == 400


def test_providers(client):
    assert "password" in client.get("/auth/providers").json()["providers"]


def test_profile_role_cannot_change(client, signup):
    token = signup("ana@example.com")["token"]
    resp = client.patch("/profile", json={"role": "admin", "dietaryPreferences": ["Vegan"]}, headers=auth_header(token))
    assert resp.status_code == 200
    body = resp.json()
    assert body["role"] == "customer"
    assert body["dietaryPreferences"] == ["Vegan"]


def test_setup_wizard_over_http(client, signup, store, monkeypatch):
    token = signup("owner@example.com", role="restaurant")["token"]
    headers = auth_header(token)

    state = client.get("/restaurant/setup", headers=headers).json()
    assert state["currentStep"] == "basic"

    resp = client.post("/restaurant/setup/basic", json={"restaurantName": "Pizza Verde"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please complete all required fields"

    resp = client.post("/restaurant/setup/menu", json={"categories": [{"name": "Pizze"}]}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Complete the basic step first"

    restaurant_id = _setup_restaurant(client, token, monkeypatch)
    restaurant = client.get(f"/restaurants/{restaurant_id}").json()
    assert restaurant["status"] == "pending"
    assert restaurant["address"]["coordinates"] == {"lat": 40.4168, "lng": -3.7038}
    assert restaurant["schedule"]["monday"]["closed"] is True
    assert restaurant["schedule"]["tuesday"] == {"open": "09:00", "close": "22:00", "closed": False}
    assert store[database.RESTAURANT_DRAFTS].count_documents({}) == 0

    mine = client.get("/restaurants/mine", headers=headers).json()
    assert [r["id"] for r in mine] == [restaurant_id]


def test_customers_cannot_use_the_wizard(client, signup):
    token = signup("ana@example.com")["token"]
    assert client.get("/restaurant/setup", headers=auth_header(token)).status_code == 403


def test_owner_edits_but_cannot_activate(client, signup, store, monkeypatch):
    owner = signup("owner@example.com", role="restaurant")["token"]
    restaurant_id = _setup_restaurant(client, owner, monkeypatch)

    resp = client.patch(f"/restaurants/{restaurant_id}", json={
        "phone": "+34 611 111 111",
        "status": "active",
        "ratings": {"average": 5, "count": 900},
        "reviews": ["fake"],
        "menuItems": [{"name": "Free pizza"}],
    }, headers=auth_header(owner))
    assert resp.status_code == 200
    body = resp.json()
    assert body["phone"] == "+34 611 111 111"
    assert body["status"] == "pending"
    assert body["ratings"] == {"average": 0, "count": 0}
    assert body["reviews"] == []
    assert body["menuItems"] == []

    other = signup("other@example.com", role="restaurant")["token"]
    resp = client.patch(f"/restaurants/{restaurant_id}", json={"phone": "x"}, headers=auth_header(other))
    assert resp.status_code == 403

    admin = _make_admin(store, signup)["token"]
    toggled = client.post(f"/admin/restaurants/{restaurant_id}/toggle-status", headers=auth_header(admin))
    assert toggled.json()["status"] == "active"
    toggled = client.post(f"/admin/restaurants/{restaurant_id}/toggle-status", headers=auth_header(admin))
    assert toggled.json()["status"] == "suspended"

    assert client.post(f"/admin/restaurants/{restaurant_id}/toggle-status", headers=auth_header(owner)).status_code == 403


def test_search_endpoints(client, signup, store, monkeypatch):
    owner = signup("owner@example.com", role="restaurant")["token"]
    restaurant_id = _setup_restaurant(client, owner, monkeypatch)
    admin = _make_admin(store, signup)["token"]

    # Pending restaurants are hidden from customers.
    assert client.get("/restaurants", params={"searchTerm": "pizza"}).json() == []
    client.post(f"/admin/restaurants/{restaurant_id}/toggle-status", headers=auth_header(admin))

    found = client.get("/restaurants", params={
        "searchTerm": "PIZZA", "cuisine": "italian", "dietaryTags": ["Vegetarian"],
    }).json()
    assert [r["id"] for r in found] == [restaurant_id]
    assert client.get("/restaurants", params={"dietaryTags": ["Vegetarian", "Vegan"]}).json() == []

    browsed = client.get("/search", params={"searchTerm": "madrid", "sortBy": "name"}).json()
    assert [r["id"] for r in browsed] == [restaurant_id]
    assert client.get("/search", params={"sortBy": "rating"}).status_code == 422

    assert [r["id"] for r in client.get("/restaurants/lookup", params={"q": "verde"}).json()] == [restaurant_id]
    assert client.get("/restaurants/lookup", params={"q": "verde", "after": "Pizza Verde"}).json() == []

    listed = client.get("/admin/restaurants", params={"searchTerm": "gran via"}, headers=auth_header(admin)).json()
    assert [r["id"] for r in listed] == [restaurant_id]
    admin_users = client.get("/admin/users", headers=auth_header(admin)).json()
    assert {u["email"] for u in admin_users} == {"owner@example.com"}


def test_menu_routes(client, signup, monkeypatch):
    owner = signup("owner@example.com", role="restaurant")["token"]
    restaurant_id = _setup_restaurant(client, owner, monkeypatch)

    menu = client.get(f"/restaurants/{restaurant_id}/menu").json()
    assert [c["name"] for c in menu["categories"]] == ["Pizze", "Insalate"]

    items = client.get(f"/restaurants/{restaurant_id}/menu/items", params={"allergens": ["Dairy"]}).json()
    assert [i["name"] for i in items] == ["Diavola", "Caprese"]
    items = client.get(f"/restaurants/{restaurant_id}/menu/items", params={"dietaryTags": ["Vegetarian"]}).json()
    assert [i["name"] for i in items] == ["Margherita", "Caprese"]
    items = client.get(f"/restaurants/{restaurant_id}/menu/items", params={"spicyLevel": 3}).json()
    assert [i["name"] for i in items] == ["Diavola"]

    menu["categories"] = menu["categories"][1:]
    resp = client.put(f"/restaurants/{restaurant_id}/menu", json=menu, headers=auth_header(owner))
    assert resp.status_code == 200
    assert resp.json()["version"] == menu["version"] + 1

    published = client.post(f"/restaurants/{restaurant_id}/menu/publish", headers=auth_header(owner)).json()
    assert published["status"] == "published"
    by_slug = client.get("/menus/pizza-verde").json()
    assert [c["name"] for c in by_slug["categories"]] == ["Insalate"]
    assert client.get("/menus/unknown").status_code == 404


def test_menu_item_catalogue(client, signup, monkeypatch):
    owner = signup("owner@example.com", role="restaurant")["token"]
    headers = auth_header(owner)
    restaurant_id = _setup_restaurant(client, owner, monkeypatch)

    resp = client.post(f"/restaurants/{restaurant_id}/menu-items", json={
        "name": "Tiramisu", "description": "Coffee and mascarpone", "price": 6.5, "category": "Dolci",
    }, headers=headers)
    assert resp.status_code == 200
    item_id = resp.json()["id"]

    assert client.get(f"/menu-items/{item_id}").json()["ratings"] == {"average": 0.0, "count": 0}
    assert client.patch(f"/menu-items/{item_id}", json={"price": 7}, headers=headers).json()["price"] == 7
    off = client.post(f"/menu-items/{item_id}/availability", json={"isAvailable": False}, headers=headers).json()
    assert off["isAvailable"] is False

    found = client.get(f"/restaurants/{restaurant_id}/menu-items", params={"searchTerm": "mascarpone"}).json()
    assert [i["id"] for i in found] == [item_id]

    upload = client.post(f"/menu-items/{item_id}/images", files={"file": ("tiramisu.jpg", b"jpeg-bytes", "image/jpeg")},
                         headers=headers)
    assert upload.status_code == 200
    assert upload.json()["images"] == [f"/media/restaurants/{restaurant_id}/menu/{item_id}/tiramisu.jpg"]

    assert client.delete(f"/menu-items/{item_id}", headers=headers).json() == {"ok": True}
    assert client.get(f"/menu-items/{item_id}").status_code == 404


def test_reviews_and_favorites(client, signup, monkeypatch):
    owner = signup("owner@example.com", role="restaurant")["token"]
    restaurant_id = _setup_restaurant(client, owner, monkeypatch)
    customer = signup("ana@example.com")["token"]
    headers = auth_header(customer)

    resp = client.post("/reviews", json={"restaurantId": restaurant_id, "rating": 5, "comment": "Buonissima"},
                       headers=headers)
    assert resp.status_code == 200
    review_id = resp.json()["id"]

    reviews = client.get(f"/restaurants/{restaurant_id}/reviews").json()
    assert reviews[0]["restaurantName"] == "Pizza Verde"
    assert client.get("/profile/reviews", headers=headers).json()[0]["id"] == review_id

    client.post("/reviews", json={"restaurantId": restaurant_id, "menuItemId": "margherita", "rating": 4,
                                   "comment": "Great crust"}, headers=headers)
    item_reviews = client.get("/menu-items/margherita/reviews").json()
    assert [r["comment"] for r in item_reviews] == ["Great crust"]
    assert client.get("/menu-items/diavola/reviews").json() == []

    assert client.patch(f"/reviews/{review_id}", json={"rating": 1}, headers=auth_header(owner)).status_code == 403
    assert client.post("/reviews", json={"restaurantId": restaurant_id, "rating": 5},
                       headers=auth_header(owner)).status_code == 403

    fav = client.post(f"/profile/favorites/{restaurant_id}", headers=headers).json()
    assert fav == {"favoriteRestaurants": [restaurant_id]}
    assert client.get("/profile/favorites", headers=headers).json() == fav
    assert client.post("/profile/favorites/nope", headers=headers).status_code == 404


def test_password_reset_over_http(client, signup, monkeypatch):
    import main

    signup("ana@example.com")
    sent = []
    monkeypatch.setattr(main.identity, "mail_sender", lambda email, token: sent.append(token))

    assert client.post("/auth/password-reset", json={"email": "ana@example.com"}).json() == {"ok": True}
    assert client.post("/auth/password-reset", json={"email": "ghost@example.com"}).json() == {"ok": True}
    assert len(sent) == 1

    resp = client.post("/auth/password-reset/confirm", json={"token": sent[0], "newPassword": "brandnew1"})
    assert resp.status_code == 200
    resp = client.post("/auth/signin", json={"email": "ana@example.com", "password": "brandnew1"})
    assert resp.status_code == 200


def test_cover_upload(client, signup, monkeypatch, tmp_path):
    owner = signup("owner@example.com", role="restaurant")["token"]
    restaurant_id = _setup_restaurant(client, owner, monkeypatch)
    resp = client.post(f"/restaurants/{restaurant_id}/cover",
                       files={"file": ("../front.png", b"png-bytes", "image/png")}, headers=auth_header(owner))
    assert resp.status_code == 200
    assert resp.json()["coverImageUrl"] == f"/media/restaurants/{restaurant_id}/cover/front.png"
    assert (tmp_path / "restaurants" / restaurant_id / "cover" / "front.png").read_bytes() == b"png-bytes"
