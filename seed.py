"""
Populate the store with sample restaurants, menus and reviews for local development.

Every record has a fixed id, so running the script again overwrites the
samples instead of duplicating them.

    DATABASE_URL=mongodb://localhost:27017 DATABASE_NAME=restaurants python seed.py
"""
import logging
import sys

import database
import menus
import users
from errors import AppError
from schemas import Menu, MenuCategory, MenuItem, RestaurantProfile, Review

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_IMAGE = "/assets/images/defaults/default-review-image.jpg"
SAMPLE_CUSTOMER = {"uid": "demo-customer", "email": "customer@example.com", "displayName": "Demo Customer"}


def _hours(weekday, friday_saturday, sunday):
    schedule = {day: {"open": weekday[0], "close": weekday[1]} for day in
                ("monday", "tuesday", "wednesday", "thursday")}
    schedule["friday"] = schedule["saturday"] = {"open": friday_saturday[0], "close": friday_saturday[1]}
    schedule["sunday"] = {"open": sunday[0], "close": sunday[1]}
    return schedule


SAMPLE_RESTAURANTS = [
    {
        "uid": "rest1",
        "email": "italiano@example.com",
        "restaurantName": "La Bella Italia",
        "description": "Auténtica cocina italiana con pasta fresca hecha a diario y pizzas horneadas en horno de leña.",
        "address": {"street": "Calle Principal 123", "city": "Ciudad", "country": "ES"},
        "phone": "+1234567890",
        "website": "www.labellaitalia.com",
        "cuisine": ["Italian"],
        "schedule": _hours(("12:00", "22:00"), ("12:00", "23:00"), ("12:00", "21:00")),
        "features": ["Terraza", "Wifi", "Parking"],
        "dietaryOptions": ["Vegetarian", "Gluten-Free", "Lactose-Free"],
    },
    {
        "uid": "rest2",
        "email": "sushi@example.com",
        "restaurantName": "Sakura Sushi",
        "description": "El mejor sushi de la ciudad con pescado fresco importado diariamente de Japón.",
        "address": {"street": "Avenida Marina 456", "city": "Ciudad", "country": "ES"},
        "phone": "+1234567891",
        "website": "www.sakurasushi.com",
        "cuisine": ["Japanese"],
        "schedule": _hours(("13:00", "22:30"), ("13:00", "23:30"), ("13:00", "22:00")),
        "features": ["Barra de Sushi", "Sake Bar", "Reservas"],
        "dietaryOptions": ["Gluten-Free", "Lactose-Free"],
    },
    {
        "uid": "rest3",
        "email": "taco@example.com",
        "restaurantName": "Taco Loco",
        "description": "Auténtica comida mexicana callejera en un ambiente casual y festivo.",
        "address": {"street": "Plaza Central 789", "city": "Ciudad", "country": "ES"},
        "phone": "+1234567892",
        "website": "www.tacoloco.com",
        "cuisine": ["Mexican"],
        "schedule": _hours(("11:00", "23:00"), ("11:00", "02:00"), ("11:00", "23:00")),
        "features": ["Música en vivo", "Bar", "Delivery"],
        "dietaryOptions": ["Vegetarian", "Vegan", "Gluten-Free"],
    },
]

# restaurant id -> (slug, [(category id, name)], [(item id, name, description, price, category id)])
SAMPLE_MENUS = {
    "rest1": ("la-bella-italia", [
        ("antipasti", "Antipasti"), ("pasta", "Pasta Fresca"), ("pizza", "Pizza"), ("dolci", "Dolci"),
    ], [
        ("bruschetta", "Bruschetta", "Toasted bread with fresh tomatoes, garlic, basil and olive oil", 8.99, "antipasti"),
        ("carbonara", "Spaghetti Carbonara", "Fresh pasta with eggs, pecorino cheese, guanciale and black pepper", 16.99, "pasta"),
        ("margherita", "Pizza Margherita", "Tomato sauce, mozzarella, fresh basil", 14.99, "pizza"),
    ]),
    "rest2": ("sakura-sushi", [
        ("nigiri", "Nigiri"), ("maki", "Maki Rolls"), ("special", "Special Rolls"), ("tempura", "Tempura"),
    ], [
        ("salmon-nigiri", "Salmon Nigiri", "Fresh salmon over seasoned rice", 6.99, "nigiri"),
        ("california", "California Roll", "Crab meat, avocado, cucumber", 12.99, "maki"),
        ("dragon", "Dragon Roll", "Eel, cucumber, topped with avocado", 16.99, "special"),
    ]),
    "rest3": ("taco-loco", [
        ("tacos", "Tacos"), ("burritos", "Burritos"), ("quesadillas", "Quesadillas"), ("sides", "Sides"),
    ], [
        ("al-pastor", "Tacos Al Pastor", "Marinated pork with pineapple, onions and cilantro", 3.99, "tacos"),
        ("carne-asada", "Burrito Carne Asada", "Grilled steak with rice, beans, cheese and pico de gallo", 11.99, "burritos"),
        ("queso", "Quesadilla de Queso", "Melted cheese with your choice of meat", 9.99, "quesadillas"),
    ]),
}

SAMPLE_REVIEWS = [
    ("rest1", 4.5, 5, "¡Excelente comida italiana! La pasta estaba perfectamente al dente y la salsa era deliciosa. "
                      "El servicio fue muy atento."),
    ("rest2", 5, 8, "El mejor sushi que he probado en la ciudad. Los rolls son creativos y el pescado muy fresco. "
                    "¡Definitivamente volveré!"),
    ("rest3", 4, 3, "Tacos auténticos y muy sabrosos. El ambiente es casual y divertido. Los precios son razonables."),
]


def seed_restaurants():
    for sample in SAMPLE_RESTAURANTS:
        uid = sample["uid"]
        users.create_user_profile(uid, {
            "email": sample["email"],
            "displayName": sample["restaurantName"],
            "role": "restaurant",
            "restaurantId": uid,
            "restaurantName": sample["restaurantName"],
            "status": "active",
        })
        profile = RestaurantProfile.model_validate({**sample, "displayName": sample["restaurantName"], "status": "active"})
        now = database.server_timestamp()
        doc = profile.model_dump(by_alias=True, exclude_none=True)
        doc.update({"createdAt": now, "updatedAt": now})
        database.set_document(database.RESTAURANTS, uid, doc)
        logger.info("Created restaurant: %s", sample["restaurantName"])


def seed_menus():
    for restaurant_id, (slug, categories, items) in SAMPLE_MENUS.items():
        menu = Menu(
            id=restaurant_id,
            restaurant_id=restaurant_id,
            slug=slug,
            status="published",
            categories=[
                MenuCategory(
                    id=category_id,
                    name=name,
                    order=order,
                    items=[
                        MenuItem(id=item_id, name=item_name, description=description, price=price,
                                 category_id=category_id, order=1)
                        for item_id, item_name, description, price, item_category in items
                        if item_category == category_id
                    ],
                )
                for order, (category_id, name) in enumerate(categories, start=1)
            ],
        )
        menu.last_updated = database.server_timestamp()
        menus.save_menu(menu)
        logger.info("Created menu for restaurant: %s", slug)


def seed_reviews():
    users.create_user_profile(SAMPLE_CUSTOMER["uid"], {**SAMPLE_CUSTOMER, "role": "customer"})
    review_ids = []
    for restaurant_id, rating, likes, comment in SAMPLE_REVIEWS:
        restaurant = database.get_document(database.RESTAURANTS, restaurant_id)
        review = Review(
            user_id=SAMPLE_CUSTOMER["uid"],
            restaurant_id=restaurant_id,
            restaurant_name=restaurant["restaurantName"],
            restaurant_image=DEFAULT_REVIEW_IMAGE,
            rating=rating,
            comment=comment,
            images=[DEFAULT_REVIEW_IMAGE],
            likes=likes,
        )
        review_id = f"review-{restaurant_id}"
        now = database.server_timestamp()
        doc = review.model_dump(by_alias=True, exclude_none=True)
        doc.update({"createdAt": now, "updatedAt": now})
        database.set_document(database.REVIEWS, review_id, doc)
        review_ids.append(review_id)
        logger.info("Created review for %s", restaurant["restaurantName"])
    users.update_user_profile(SAMPLE_CUSTOMER["uid"], {"reviews": review_ids})


@database.backend_call("Error during seeding")
def seed():
    logger.info("Seeding restaurants...")
    seed_restaurants()
    logger.info("Creating menus...")
    seed_menus()
    logger.info("Seeding reviews...")
    seed_reviews()


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        seed()
    except AppError as e:
        logger.error("Error during seeding: %s", e.message)
        sys.exit(1)
    logger.info("Seeding completed successfully!")


if __name__ == "__main__":
    main()
