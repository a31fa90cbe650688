"""
Storefront route table.

Maps URL paths to the view that serves them, gated by access tier:

- open: anyone
- public: anyone, but an admin is sent to the dashboard and a signed-in
  client is sent home from the sign-in/sign-up pages
- client: signed-in users with the USER role
- admin: signed-in users with the ADMIN role

Routes are tried in order and the first match wins.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from storefront.auth import ADMIN, USER

OPEN = "open"
PUBLIC = "public"
CLIENT = "client"
ADMIN_ONLY = "admin"

HOME = "/"
SHOP = "/shop"
SEARCH = "/search/:searchKey"
FEATURED_PRODUCTS = "/featured"
RECOMMENDED_PRODUCTS = "/recommended"
SIGNUP = "/signup"
SIGNIN = "/signin"
FORGOT_PASSWORD = "/forgot_password"
VIEW_PRODUCT = "/product/:id"
VIEW_CATEGORY = "/category/:id"
ACCOUNT = "/account"
ACCOUNT_EDIT = "/account/edit"
CHECKOUT = "/checkout"
ADMIN_DASHBOARD = "/admin/dashboard"
IMPORT_PRODUCTS = "/admin/import"
ADMIN_PRODUCTS = "/admin/products"
ADMIN_CONTENT = "/admin/content"
ADMIN_USERS = "/admin/users"
ADD_PRODUCT = "/admin/add"
EDIT_PRODUCT = "/admin/edit"


@dataclass
class Route:
    view: str
    tier: str = OPEN
    path: Optional[str] = None    # None matches everything
    exact: bool = False

    def __post_init__(self):
        self._regex = _compile(self.path, self.exact) if self.path is not None else None

    def match(self, path: str) -> Optional[Dict[str, str]]:
        if self._regex is None:
            return {}
        m = self._regex.match(path)
        return m.groupdict() if m else None


@dataclass
class Resolution:
    view: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)
    redirect: Optional[str] = None


def _compile(path: str, exact: bool):
    pattern = ""
    for segment in path.strip("/").split("/"):
        if not segment:
            continue
        if segment.startswith(":"):
            pattern += f"/(?P<{segment[1:]}>[^/]+)"
        else:
            pattern += "/" + re.escape(segment)
    return re.compile("^" + pattern + ("/?$" if exact else "(?:/.*)?$"))


ROUTES: List[Route] = [
    Route("Search", path=SEARCH, exact=True),
    Route("Home", path=HOME, exact=True),
    Route("Shop", path=SHOP, exact=True),
    Route("FeaturedProducts", path=FEATURED_PRODUCTS, exact=True),
    Route("RecommendedProducts", path=RECOMMENDED_PRODUCTS, exact=True),
    Route("SignUp", PUBLIC, SIGNUP),
    Route("SignIn", PUBLIC, SIGNIN, exact=True),
    Route("ForgotPassword", PUBLIC, FORGOT_PASSWORD),
    Route("ViewProduct", path=VIEW_PRODUCT),
    Route("ViewCategory", path=VIEW_CATEGORY),
    Route("UserAccount", CLIENT, ACCOUNT, exact=True),
    Route("EditAccount", CLIENT, ACCOUNT_EDIT, exact=True),
    Route("Checkout", PUBLIC, CHECKOUT),
    Route("Dashboard", ADMIN_ONLY, ADMIN_DASHBOARD, exact=True),
    Route("ImportProducts", ADMIN_ONLY, IMPORT_PRODUCTS),
    Route("Products", ADMIN_ONLY, ADMIN_PRODUCTS),
    Route("SiteContent", ADMIN_ONLY, ADMIN_CONTENT),
    Route("Users", ADMIN_ONLY, ADMIN_USERS),
    Route("AddProduct", ADMIN_ONLY, ADD_PRODUCT),
    Route("EditProduct", ADMIN_ONLY, EDIT_PRODUCT + "/:id"),
    Route("PageNotFound", PUBLIC),
]


def _gate(route: Route, path: str, user: Optional[dict]) -> Optional[str]:
    """Return a redirect target, or None when the view may render."""
    role = user["role"] if user else None

    if route.tier == ADMIN_ONLY:
        return None if role == ADMIN else HOME

    if route.tier == CLIENT:
        if role == USER:
            return None
        return ADMIN_DASHBOARD if role == ADMIN else SIGNIN

    if route.tier == OPEN:
        return None
    if role == ADMIN:
        return ADMIN_DASHBOARD
    if role == USER and route.path in (SIGNIN, SIGNUP):
        return HOME
    return None


def resolve_view(path: str, user: Optional[dict] = None) -> Resolution:
    path = "/" + path.strip("/")
    for route in ROUTES:
        params = route.match(path)
        if params is None:
            continue
        redirect = _gate(route, path, user)
        if redirect:
            return Resolution(redirect=redirect)
        return Resolution(view=route.view, params=params)
    return Resolution(view="PageNotFound")
