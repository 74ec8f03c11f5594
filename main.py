import logging
from typing import Any, Dict, List, Optional

from authlib.integrations.starlette_client import OAuth
from fastapi import Body, Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError
from starlette.config import Config as StarletteConfig
from starlette.middleware.sessions import SessionMiddleware

import database
import menus
import restaurants
import users
from auth import AuthSession, AuthUser, IdentityProvider, decode_jwt
from config import (
    DATABASE_NAME, DATABASE_URL, FRONTEND_URL, GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET,
    LOG_LEVEL, MEDIA_ROOT, MEDIA_URL, PORT, SESSION_SECRET,
)
from errors import AppError, AuthError, AuthorizationError, FormValidationError, NotFoundError
from filters import browse_restaurants, filter_menu_items, filter_restaurants
from menu_builder import MenuBuilder
from schemas import (
    AvailabilityBody, Menu, MenuItemRecord, MenuItemRecordUpdate, PasswordResetBody,
    PasswordResetConfirmBody, ReviewCreate, ReviewUpdate, SignInBody, SignUpBody, SortOption,
)
from setup_wizard import SetupWizard
from storage import cover_image_path, menu_image_path, storage

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Restaurant Discovery API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# authlib keeps the OAuth state in the session between login and callback.
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET)
app.mount(MEDIA_URL, StaticFiles(directory=MEDIA_ROOT, check_dir=False), name="media")

identity = IdentityProvider()


@app.exception_handler(AppError)
def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Restaurant fields an owner cannot set through PATCH.
OWNER_LOCKED_FIELDS = ("status", "ratings", "reviews", "menuItems")


# ---------------------- Auth & JWT ----------------------
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Dict[str, Any]:
    if not creds:
        raise AuthError("Authorization required")
    claims = decode_jwt(creds.credentials)
    profile = users.get_user_profile(claims["sub"])
    return {
        "sub": claims["sub"],
        "email": claims.get("email", ""),
        "name": claims.get("name", ""),
        "role": profile.role if profile else None,
        "token": creds.credentials,
    }


def require_role(*roles: str):
    def dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if user["role"] not in roles:
            raise AuthorizationError(f"This action requires one of the roles: {', '.join(roles)}")
        return user
    return dependency


def _session_payload(user: AuthUser) -> Dict[str, Any]:
    profile = users.get_user_profile(user.uid)
    return {"token": user.token, "user": users.dump_profile(profile) if profile else None}


@app.post("/auth/signup")
def sign_up(body: SignUpBody):
    session = AuthSession(identity)
    user = session.sign_up(body.email, body.password, body.display_name, body.role)
    return _session_payload(user)


@app.post("/auth/signin")
def sign_in(body: SignInBody):
    session = AuthSession(identity)
    user = session.sign_in(body.email, body.password)
    return _session_payload(user)


@app.post("/auth/signout")
def sign_out(user=Depends(get_current_user)):
    session = AuthSession(identity, AuthUser(uid=user["sub"], email=user["email"], token=user["token"]))
    session.sign_out()
    return {"ok": True}


@app.post("/auth/password-reset")
def password_reset(body: PasswordResetBody):
    AuthSession(identity).reset_password(body.email)
    return {"ok": True}


@app.post("/auth/password-reset/confirm")
def password_reset_confirm(body: PasswordResetConfirmBody):
    identity.confirm_password_reset(body.token, body.new_password)
    return {"ok": True}


@app.get("/auth/me")
def me(user=Depends(get_current_user)):
    profile = users.get_user_profile(user["sub"])
    return {"uid": user["sub"], "email": user["email"], "profile": users.dump_profile(profile) if profile else None}


# Google OAuth (endpoints answer 400 until the client id and secret are set)
starlette_config = StarletteConfig(environ={
    "GOOGLE_CLIENT_ID": GOOGLE_CLIENT_ID or "",
    "GOOGLE_CLIENT_SECRET": GOOGLE_CLIENT_SECRET or "",
})
oauth = OAuth(starlette_config)
if GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET:
    oauth.register(
        name='google',
        server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
        client_kwargs={'scope': 'openid email profile'},
    )


@app.get("/auth/providers")
def auth_providers():
    providers = ["password"]
    if GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET:
        providers.append("google")
    return {"providers": providers}


@app.get('/auth/login/google')
async def login_via_google(request: Request):
    if oauth.create_client('google') is None:
        raise FormValidationError('Google OAuth not configured')
    redirect_uri = request.url_for('auth_google_callback')
    return await oauth.google.authorize_redirect(request, redirect_uri)


@app.get('/auth/callback/google')
async def auth_google_callback(request: Request):
    if oauth.create_client('google') is None:
        raise FormValidationError('Google OAuth not configured')
    token = await oauth.google.authorize_access_token(request)
    userinfo = token.get('userinfo')
    if not userinfo:
        raise AuthError('No userinfo from Google')
    user = AuthSession(identity).sign_in_with_google(dict(userinfo))
    # redirect back to frontend with token
    return RedirectResponse(url=f"{FRONTEND_URL}/auth/callback?token={user.token}")


# ---------------------- Profile ----------------------
@app.get("/profile")
def get_profile(user=Depends(get_current_user)):
    profile = users.get_user_profile(user["sub"])
    if profile is None:
        raise NotFoundError("User profile not found")
    return users.dump_profile(profile)


@app.patch("/profile")
def update_profile(updates: Dict[str, Any] = Body(...), user=Depends(get_current_user)):
    return users.dump_profile(users.update_user_profile(user["sub"], updates))


@app.get("/profile/reviews")
def my_reviews(user=Depends(get_current_user)):
    return [r.model_dump(by_alias=True) for r in users.get_user_reviews(user["sub"])]


@app.get("/profile/favorites")
def my_favorites(user=Depends(get_current_user)):
    return {"favoriteRestaurants": users.get_favorite_restaurants(user["sub"])}


@app.post("/profile/favorites/{restaurant_id}")
def toggle_favorite(restaurant_id: str, user=Depends(require_role("customer"))):
    if restaurants.get_restaurant_profile(restaurant_id) is None:
        raise NotFoundError("Restaurant not found")
    return {"favoriteRestaurants": users.toggle_favorite_restaurant(user["sub"], restaurant_id)}


# ---------------------- Restaurants ----------------------
def _owned_restaurant(restaurant_id: str, user: Dict[str, Any]) -> dict:
    restaurant = restaurants.get_restaurant_profile(restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    if restaurant.get("uid") != user["sub"] and user["role"] != "admin":
        raise AuthorizationError("You do not manage this restaurant")
    return restaurant


@app.get("/restaurants")
def list_restaurants(
    searchTerm: str = "",
    cuisine: str = "",
    dietaryTags: List[str] = Query(default=[]),
):
    active = restaurants.list_active_restaurants()
    return filter_restaurants(active, searchTerm, cuisine, dietaryTags)


@app.get("/search")
def search(searchTerm: str = "", cuisine: str = "", sortBy: Optional[SortOption] = None):
    active = restaurants.list_active_restaurants(cuisine or None)
    return browse_restaurants(active, searchTerm, cuisine, sortBy)


@app.get("/restaurants/lookup")
def lookup_restaurants(q: str = "", after: Optional[str] = None):
    return restaurants.search_restaurants(q, after)


@app.get("/restaurants/mine")
def my_restaurants(user=Depends(require_role("restaurant"))):
    return restaurants.get_user_restaurants(user["sub"])


@app.get("/restaurants/{restaurant_id}")
def get_restaurant(restaurant_id: str):
    restaurant = restaurants.get_restaurant_profile(restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    return restaurant


@app.patch("/restaurants/{restaurant_id}")
def update_restaurant(restaurant_id: str, updates: Dict[str, Any] = Body(...), user=Depends(get_current_user)):
    _owned_restaurant(restaurant_id, user)
    if user["role"] != "admin":
        updates = {k: v for k, v in updates.items() if k not in OWNER_LOCKED_FIELDS}
    return restaurants.update_restaurant_profile(restaurant_id, updates)


@app.delete("/restaurants/{restaurant_id}")
def delete_restaurant(restaurant_id: str, user=Depends(get_current_user)):
    _owned_restaurant(restaurant_id, user)
    restaurants.delete_restaurant_profile(restaurant_id)
    menus.delete_menu(restaurant_id)
    return {"ok": True}


@app.post("/restaurants/{restaurant_id}/cover")
def upload_cover(restaurant_id: str, file: UploadFile = File(...), user=Depends(get_current_user)):
    _owned_restaurant(restaurant_id, user)
    url = storage.upload(cover_image_path(restaurant_id, file.filename), file.file.read())
    return restaurants.update_restaurant_profile(restaurant_id, {"coverImageUrl": url})


@app.get("/restaurants/{restaurant_id}/reviews")
def restaurant_reviews(restaurant_id: str, limit: Optional[int] = Query(default=None, ge=1)):
    return [r.model_dump(by_alias=True) for r in users.get_restaurant_reviews(restaurant_id, limit)]


# ---------------------- Setup wizard ----------------------
@app.get("/restaurant/setup")
def setup_state(user=Depends(require_role("restaurant"))):
    return SetupWizard(user["sub"], user["email"]).load().state()


@app.post("/restaurant/setup/{step_id}")
def setup_step(step_id: str, data: Dict[str, Any] = Body(...), user=Depends(require_role("restaurant"))):
    wizard = SetupWizard(user["sub"], user["email"]).load()
    wizard.complete_step(step_id, data)
    return wizard.state()


# ---------------------- Menus ----------------------
def _menu_or_404(restaurant_id: str) -> Menu:
    menu = menus.get_menu(restaurant_id)
    if menu is None:
        raise NotFoundError("Menu not found")
    return menu


@app.get("/restaurants/{restaurant_id}/menu")
def get_menu(restaurant_id: str):
    return _menu_or_404(restaurant_id).model_dump(by_alias=True)


@app.put("/restaurants/{restaurant_id}/menu")
def save_menu(restaurant_id: str, menu: Menu, user=Depends(get_current_user)):
    _owned_restaurant(restaurant_id, user)
    menu.restaurant_id = restaurant_id
    return MenuBuilder(menu).save().model_dump(by_alias=True)


@app.get("/restaurants/{restaurant_id}/menu/items")
def menu_items(
    restaurant_id: str,
    category: str = "all",
    allergens: List[str] = Query(default=[]),
    dietaryTags: List[str] = Query(default=[]),
    spicyLevel: Optional[int] = Query(default=None, ge=1, le=3),
):
    menu = _menu_or_404(restaurant_id)
    items = filter_menu_items(menu.all_items(), menu.categories, category, allergens, dietaryTags, spicyLevel)
    return [item.model_dump(by_alias=True) for item in items]


@app.post("/restaurants/{restaurant_id}/menu/publish")
def publish_menu(restaurant_id: str, user=Depends(get_current_user)):
    _owned_restaurant(restaurant_id, user)
    return menus.publish_menu(restaurant_id).model_dump(by_alias=True)


@app.post("/restaurants/{restaurant_id}/menu/archive")
def archive_menu(restaurant_id: str, user=Depends(get_current_user)):
    _owned_restaurant(restaurant_id, user)
    return menus.archive_menu(restaurant_id).model_dump(by_alias=True)


@app.get("/menus/{slug}")
def menu_by_slug(slug: str):
    menu = menus.get_menu_by_slug(slug)
    if menu is None:
        raise NotFoundError("Menu not found")
    return menu.model_dump(by_alias=True)


# ---------------------- Menu item catalogue ----------------------
def _owned_item(item_id: str, user: Dict[str, Any]) -> MenuItemRecord:
    item = menus.get_menu_item(item_id)
    if item is None:
        raise NotFoundError("Menu item not found")
    _owned_restaurant(item.restaurant_id, user)
    return item


@app.get("/restaurants/{restaurant_id}/menu-items")
def list_menu_items(restaurant_id: str, category: Optional[str] = None, searchTerm: str = ""):
    if searchTerm:
        items = menus.search_menu_items(restaurant_id, searchTerm)
    else:
        items = menus.get_restaurant_menu_items(restaurant_id, category)
    return [item.model_dump(by_alias=True) for item in items]


@app.post("/restaurants/{restaurant_id}/menu-items")
def add_menu_item(restaurant_id: str, body: MenuItemRecord, user=Depends(get_current_user)):
    _owned_restaurant(restaurant_id, user)
    return {"id": menus.add_menu_item(restaurant_id, body)}


@app.get("/menu-items/{item_id}")
def get_menu_item(item_id: str):
    item = menus.get_menu_item(item_id)
    if item is None:
        raise NotFoundError("Menu item not found")
    return item.model_dump(by_alias=True)


@app.patch("/menu-items/{item_id}")
def update_menu_item(item_id: str, body: MenuItemRecordUpdate, user=Depends(get_current_user)):
    _owned_item(item_id, user)
    return menus.update_menu_item(item_id, body).model_dump(by_alias=True)


@app.delete("/menu-items/{item_id}")
def delete_menu_item(item_id: str, user=Depends(get_current_user)):
    _owned_item(item_id, user)
    menus.delete_menu_item(item_id)
    return {"ok": True}


@app.post("/menu-items/{item_id}/availability")
def set_availability(item_id: str, body: AvailabilityBody, user=Depends(get_current_user)):
    _owned_item(item_id, user)
    return menus.toggle_menu_item_availability(item_id, body.is_available).model_dump(by_alias=True)


@app.post("/menu-items/{item_id}/images")
def upload_menu_item_image(item_id: str, file: UploadFile = File(...), user=Depends(get_current_user)):
    item = _owned_item(item_id, user)
    url = storage.upload(menu_image_path(item.restaurant_id, item_id, file.filename), file.file.read())
    return menus.add_menu_item_image(item_id, url).model_dump(by_alias=True)


# ---------------------- Reviews ----------------------
@app.get("/menu-items/{item_id}/reviews")
def menu_item_reviews(item_id: str, limit: int = Query(default=10, ge=1)):
    return [r.model_dump(by_alias=True) for r in users.get_item_reviews(item_id, limit)]


@app.post("/reviews")
def create_review(body: ReviewCreate, user=Depends(require_role("customer"))):
    return {"id": users.create_review(user["sub"], body)}


@app.patch("/reviews/{review_id}")
def update_review(review_id: str, body: ReviewUpdate, user=Depends(get_current_user)):
    return users.update_review(review_id, user["sub"], body).model_dump(by_alias=True)


# ---------------------- Admin ----------------------
@app.get("/admin/users")
def admin_users(searchTerm: str = "", user=Depends(require_role("admin"))):
    return [users.dump_profile(p) for p in users.list_users(searchTerm)]


@app.get("/admin/restaurants")
def admin_restaurants(searchTerm: str = "", user=Depends(require_role("admin"))):
    return restaurants.list_restaurants(searchTerm)


@app.post("/admin/restaurants/{restaurant_id}/toggle-status")
def admin_toggle_status(restaurant_id: str, user=Depends(require_role("admin"))):
    return restaurants.toggle_restaurant_status(restaurant_id)


# ---------------------- Misc ----------------------
@app.get("/")
def read_root():
    return {"message": "Restaurant Discovery API"}


@app.get("/health")
def health():
    response = {
        "backend": "running",
        "database": "not configured",
        "database_url": "set" if DATABASE_URL else "not set",
        "database_name": DATABASE_NAME,
        "collections": [],
    }
    if database.db is None:
        return response
    try:
        database.ping()
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "connected"
    except PyMongoError as e:
        logger.error("Health check failed: %s", e)
        response["database"] = f"error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
