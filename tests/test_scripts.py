import database
import menus
import restaurants
import seed
import users
from update_review_images import update_review_images


def test_seed_is_rerunnable(store):
    seed.seed()
    seed.seed()

    assert store[database.RESTAURANTS].count_documents({}) == 3
    assert store[database.MENUS].count_documents({}) == 3
    assert store[database.REVIEWS].count_documents({}) == 3

    bella = restaurants.get_restaurant_profile("rest1")
    assert bella["restaurantName"] == "La Bella Italia"
    assert bella["status"] == "active"
    assert bella["dietaryOptions"] == ["Vegetarian", "Gluten-Free", "Lactose-Free"]

    menu = menus.get_menu("rest1")
    assert menu.slug == "la-bella-italia"
    assert [c.id for c in menu.categories] == ["antipasti", "pasta", "pizza", "dolci"]
    assert [i.id for i in menu.all_items()] == ["bruschetta", "carbonara", "margherita"]

    assert users.get_user_profile(seed.SAMPLE_CUSTOMER["uid"]).reviews == [
        "review-rest1", "review-rest2", "review-rest3",
    ]
    assert [r.rating for r in users.get_restaurant_reviews("rest2")] == [5]


def test_seeded_restaurants_are_searchable(store):
    seed.seed()
    names = [r["restaurantName"] for r in restaurants.search_restaurants("sushi")]
    assert names == ["Sakura Sushi"]


def test_update_review_images(store):
    seed.seed()
    store[database.REVIEWS].update_many({}, {"$set": {"restaurantImage": "/old.jpg", "images": []}})

    assert update_review_images("/assets/images/new.jpg") == 3
    for review in store[database.REVIEWS].find():
        assert review["restaurantImage"] == "/assets/images/new.jpg"
        assert review["images"] == ["/assets/images/new.jpg"]
