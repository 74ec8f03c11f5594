"""
Database Schemas for the Restaurant Discovery App

Documents are stored with camelCase keys; the models expose snake_case
attributes and accept either spelling on input.
- UserProfile (tagged by role) -> users
- RestaurantProfile -> restaurants (partial copies -> restaurantDrafts)
- Menu -> menus (one per restaurant, keyed by restaurant id)
- MenuItemRecord -> menuItems
- Review -> reviews
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter
from pydantic.alias_generators import to_camel

Role = Literal['customer', 'restaurant', 'admin']
RestaurantStatus = Literal['pending', 'active', 'suspended']
MenuStatus = Literal['draft', 'published', 'archived']

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

DIETARY_TAGS = (
    'Vegetarian', 'Vegan', 'Halal', 'Kosher', 'Gluten-Free', 'Dairy-Free',
    'Lactose-Free', 'Nut-Free', 'Low-Carb', 'Keto', 'Paleo',
)
ALLERGENS = (
    'Dairy', 'Eggs', 'Fish', 'Shellfish', 'Tree Nuts', 'Peanuts', 'Wheat', 'Soy',
    'Sesame', 'Gluten', 'Mustard', 'Celery', 'Lupin', 'Molluscs', 'Sulphites',
)
CUISINES = ('Italian', 'Japanese', 'Mexican', 'Indian', 'Chinese', 'Thai', 'Mediterranean', 'American')


class SortOption(str, Enum):
    NEWEST = 'newest'
    NAME = 'name'


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------- Shared value objects ----------------------
class Coordinates(CamelModel):
    lat: float
    lng: float


class Address(CamelModel):
    street: str = ''
    city: str = ''
    state: str = ''
    postal_code: str = ''
    country: str = ''
    coordinates: Optional[Coordinates] = None

    def formatted(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.postal_code}, {self.country}"


class DaySchedule(CamelModel):
    open: str = '09:00'
    close: str = '22:00'
    closed: bool = False


class Ratings(CamelModel):
    average: float = 0
    count: int = 0


# ---------------------- User profiles ----------------------
class ProfileBase(CamelModel):
    uid: str
    email: str
    display_name: str = ''
    photo_url: Optional[str] = Field(None, alias='photoURL')
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomerProfile(ProfileBase):
    role: Literal['customer'] = 'customer'
    dietary_preferences: List[str] = Field(default_factory=list)
    favorite_restaurants: List[str] = Field(default_factory=list)
    favorite_items: List[str] = Field(default_factory=list)
    reviews: List[str] = Field(default_factory=list)


class RestaurantOwnerProfile(ProfileBase):
    role: Literal['restaurant'] = 'restaurant'
    restaurant_id: Optional[str] = None
    restaurant_name: str = ''
    description: str = ''
    cuisine: List[str] = Field(default_factory=list)
    address: Optional[Address] = None
    phone: str = ''
    website: str = ''
    schedule: Dict[str, DaySchedule] = Field(default_factory=dict)
    status: RestaurantStatus = 'pending'


class AdminProfile(ProfileBase):
    role: Literal['admin'] = 'admin'
    permissions: List[str] = Field(default_factory=list)


UserProfile = Annotated[
    Union[CustomerProfile, RestaurantOwnerProfile, AdminProfile],
    Field(discriminator='role'),
]
user_profile_adapter = TypeAdapter(UserProfile)


# ---------------------- Restaurants ----------------------
class RestaurantProfile(CamelModel):
    uid: str = Field(..., description="Owner user id")
    email: str = ''
    display_name: str = ''
    role: Literal['restaurant'] = 'restaurant'
    restaurant_name: str
    description: str = ''
    phone: str = ''
    website: str = ''
    cuisine: List[str] = Field(default_factory=list)
    dietary_options: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    address: Optional[Address] = None
    schedule: Dict[str, DaySchedule] = Field(default_factory=dict)
    photo_url: Optional[str] = Field(None, alias='photoURL')
    cover_image_url: Optional[str] = None
    status: RestaurantStatus = 'pending'
    menu_items: List[dict] = Field(default_factory=list)
    reviews: List[str] = Field(default_factory=list)
    ratings: Ratings = Field(default_factory=Ratings)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == 'active'


# ---------------------- Menus ----------------------
class MenuItemChoice(CamelModel):
    name: str
    price: Optional[float] = None


class MenuItemOption(CamelModel):
    name: str
    choices: List[MenuItemChoice] = Field(default_factory=list)


class MenuItem(CamelModel):
    id: str
    name: str
    description: str = ''
    price: float = Field(0, ge=0)
    category_id: str = ''
    image: Optional[str] = None
    is_available: bool = True
    order: int = 0
    dietary_tags: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    cuisine_tags: List[str] = Field(default_factory=list)
    spicy_level: Optional[int] = Field(None, ge=1, le=3)
    options: List[MenuItemOption] = Field(default_factory=list)


class MenuCategory(CamelModel):
    id: str
    name: str
    description: str = ''
    order: int = 0
    items: List[MenuItem] = Field(default_factory=list)


class MenuTheme(CamelModel):
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    font_family: Optional[str] = None
    logo_url: Optional[str] = None


class MenuSettings(CamelModel):
    show_prices: bool = True
    show_images: bool = True
    allow_ordering: bool = False


class Menu(CamelModel):
    id: str = ''
    restaurant_id: str = ''
    slug: str = ''
    categories: List[MenuCategory] = Field(default_factory=list)
    last_updated: Optional[datetime] = None
    version: int = 1
    status: MenuStatus = 'draft'
    currency: str = 'EUR'
    language_code: str = 'es'
    theme: Optional[MenuTheme] = None
    settings: Optional[MenuSettings] = None

    def all_items(self) -> List[MenuItem]:
        return [item for category in self.categories for item in category.items]


class MenuItemRecord(CamelModel):
    """A catalogue entry in the flat menuItems collection."""
    id: Optional[str] = None
    restaurant_id: Optional[str] = None
    name: str
    description: str = ''
    price: float = Field(..., ge=0)
    category: str = ''
    tags: List[str] = Field(default_factory=list)
    dietary_info: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    is_available: bool = True
    ratings: Ratings = Field(default_factory=Ratings)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MenuItemRecordUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    dietary_info: Optional[List[str]] = None
    video_url: Optional[str] = None
    is_available: Optional[bool] = None


# ---------------------- Reviews ----------------------
class Review(CamelModel):
    id: Optional[str] = None
    user_id: str
    restaurant_id: str
    menu_item_id: Optional[str] = None
    restaurant_name: Optional[str] = None
    restaurant_image: Optional[str] = None
    rating: float = Field(..., ge=0, le=5)
    comment: str = ''
    images: List[str] = Field(default_factory=list)
    likes: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReviewCreate(CamelModel):
    restaurant_id: str
    menu_item_id: Optional[str] = None
    rating: float = Field(..., ge=0, le=5)
    comment: str = ''
    images: List[str] = Field(default_factory=list)


class ReviewUpdate(CamelModel):
    rating: Optional[float] = Field(None, ge=0, le=5)
    comment: Optional[str] = None
    images: Optional[List[str]] = None


# ---------------------- Auth bodies ----------------------
class SignUpBody(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: str = ''
    role: Literal['customer', 'restaurant'] = 'customer'


class SignInBody(CamelModel):
    email: EmailStr
    password: str


class PasswordResetBody(CamelModel):
    email: EmailStr


class PasswordResetConfirmBody(CamelModel):
    token: str
    new_password: str = Field(..., min_length=6)


class AvailabilityBody(CamelModel):
    is_available: bool
