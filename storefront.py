"""
Client-side state for the storefront and admin console.

Each class here owns the state of one page element and nothing else; they talk to the API
only through a :class:`client.StorefrontClient`, so tests can drive them against the app
directly.
"""
import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from client import ApiError, StorefrontClient

logger = logging.getLogger(__name__)

FALLBACK_IMAGES = (
    "https://image.made-in-china.com/2f0j00gKOWlrVaghoz/OEM-Women-s-Suit-Business-Fashion-Ol-Femininity-Beauty-Salon-Work-Clothes.webp",
    "https://i.pinimg.com/736x/89/9e/81/899e810c82fca8ad12fe60a31790132d.jpg",
    "https://i.pinimg.com/736x/15/ee/21/15ee21005a300a180aa81d3f99056831.jpg",
    "https://www.instyle.com/thmb/DbZ3LYMaQh85P9rZtC6jqOkAUs=/1500x0/filters:no_upscale():max_bytes(150000):strip_icc()/GettyImages-1464932922-07bdecc7f9354e91932caaaf4d21afe7.jpg",
)
MAX_IMAGE_RETRIES = 3
MESSAGE_TTL = 5.0


# ----------------------- Product list -----------------------
class ProductListView:
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"

    def __init__(self, client: StorefrontClient):
        self.client = client
        self.state = self.LOADING
        self.products: List[dict] = []
        self.error = ""
        self.mounted = True

    def load(self):
        """Fetch the catalog once. Results arriving after :meth:`unmount` are dropped."""
        if self.state != self.LOADING:
            return
        try:
            products = self.client.list_products()
        except ApiError as exc:
            if self.mounted:
                self.error = exc.message or "Failed to fetch products"
                self.state = self.ERROR
            return
        if not self.mounted:
            logger.debug("Product list unmounted before fetch finished, discarding result")
            return
        self.products = products
        self.state = self.LOADED

    def unmount(self):
        self.mounted = False


# ----------------------- Product image -----------------------
class ProductImage:
    """Image source for one product card.

    A failed load swaps in a random picture from the fallback pool. After
    ``max_retries`` swaps the image is exhausted and stays on the last one tried.
    """

    UNLOADED = "unloaded"
    LOADED = "loaded"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"

    def __init__(
        self,
        product: dict,
        rng: Optional[random.Random] = None,
        fallback_pool: Sequence[str] = FALLBACK_IMAGES,
        max_retries: int = MAX_IMAGE_RETRIES,
    ):
        self.rng = rng or random.Random()
        self.fallback_pool = fallback_pool
        self.max_retries = max_retries
        self.reset(product)

    def reset(self, product: dict):
        self.product = product
        self.retry_count = 0
        self.state = self.UNLOADED
        self.url = product.get("image") or self.pick_fallback()

    def pick_fallback(self) -> str:
        return self.rng.choice(self.fallback_pool)

    @property
    def alt(self) -> str:
        return self.product.get("name", "")

    def on_load(self):
        self.state = self.LOADED

    def on_error(self):
        if self.state in (self.LOADED, self.EXHAUSTED):
            return
        self.retry_count += 1
        self.url = self.pick_fallback()
        self.state = self.EXHAUSTED if self.retry_count >= self.max_retries else self.RETRYING


# ----------------------- Flash message -----------------------
class FlashMessage:
    def __init__(self, ttl: float = MESSAGE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self.text = ""
        self.variant = ""
        self._shown_at: Optional[float] = None

    def show(self, text: str, variant: str):
        self.text = text
        self.variant = variant
        self._shown_at = self.clock()

    def dismiss(self):
        self.text = ""
        self.variant = ""
        self._shown_at = None

    @property
    def current(self) -> Optional[Tuple[str, str]]:
        if not self.text:
            return None
        if self.clock() - self._shown_at >= self.ttl:
            self.dismiss()
            return None
        return self.text, self.variant


# ----------------------- Admin console -----------------------
def parse_float(value: Any) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_int(value: Any) -> Optional[int]:
    number = parse_float(value)
    return None if number is None else int(number)


class AdminConsole:
    CREATE_ADMIN = "createAdmin"
    LOGIN = "login"
    PRODUCTS = "products"
    TABS = (CREATE_ADMIN, LOGIN, PRODUCTS)

    def __init__(self, client: StorefrontClient, flash: Optional[FlashMessage] = None):
        self.client = client
        self.session = client.session
        self.flash = flash or FlashMessage()
        self.loading = False
        self.active_tab = self.PRODUCTS if self.session.is_authenticated else self.LOGIN

    @property
    def admin_name(self) -> Optional[str]:
        info = self.session.admin_info
        return info.get("name") if info else None

    def tab_enabled(self, tab: str) -> bool:
        if tab == self.PRODUCTS:
            return bool(self.session.token)
        return not self.session.token

    def select_tab(self, tab: str) -> str:
        if tab not in self.TABS:
            raise ValueError(f"Unknown tab: {tab}")
        if self.tab_enabled(tab):
            self.active_tab = tab
        return self.active_tab

    def create_admin(self, name: str, email: str, password: str, confirm_password: str) -> bool:
        if password != confirm_password:
            self.flash.show("Passwords do not match", "danger")
            return False
        self.loading = True
        try:
            data = self.client.create_admin(name, email, password)
        except ApiError as exc:
            self.flash.show(exc.message or "Admin creation failed", "danger")
            return False
        finally:
            self.loading = False
        self.flash.show(data.get("message") or "Admin created successfully", "success")
        self.active_tab = self.LOGIN
        return True

    def login(self, email: str, password: str) -> bool:
        self.loading = True
        try:
            self.client.login(email, password)
        except ApiError as exc:
            self.flash.show(exc.message or "Login failed", "danger")
            return False
        finally:
            self.loading = False
        self.flash.show("Login successful", "success")
        self.active_tab = self.PRODUCTS
        return True

    def create_product(self, form: Dict[str, Any]) -> bool:
        """Submit the product form. Numeric fields arrive as strings and blanks are sent as null."""
        payload = {
            "name": form.get("name", ""),
            "price": parse_float(form.get("price")),
            "description": form.get("description", ""),
            "image": form.get("image", ""),
            "brand": form.get("brand", ""),
            "category": form.get("category", ""),
            "countInStock": parse_int(form.get("countInStock")),
        }
        self.loading = True
        try:
            self.client.create_product(payload)
        except ApiError as exc:
            self.flash.show(exc.message or "Product creation failed", "danger")
            return False
        finally:
            self.loading = False
        self.flash.show("Product created successfully", "success")
        return True

    def logout(self):
        self.client.logout()
        self.active_tab = self.LOGIN
        self.flash.show("Logged out successfully", "success")


# ----------------------- Order state -----------------------
ORDER_CREATE_REQUEST = "ORDER_CREATE_REQUEST"
ORDER_CREATE_SUCCESS = "ORDER_CREATE_SUCCESS"
ORDER_CREATE_FAIL = "ORDER_CREATE_FAIL"
ORDER_CREATE_RESET = "ORDER_CREATE_RESET"
ORDER_DETAILS_REQUEST = "ORDER_DETAILS_REQUEST"
ORDER_DETAILS_SUCCESS = "ORDER_DETAILS_SUCCESS"
ORDER_DETAILS_FAIL = "ORDER_DETAILS_FAIL"
ORDER_PAY_REQUEST = "ORDER_PAY_REQUEST"
ORDER_PAY_SUCCESS = "ORDER_PAY_SUCCESS"
ORDER_PAY_FAIL = "ORDER_PAY_FAIL"
ORDER_LIST_MY_REQUEST = "ORDER_LIST_MY_REQUEST"
ORDER_LIST_MY_SUCCESS = "ORDER_LIST_MY_SUCCESS"
ORDER_LIST_MY_FAIL = "ORDER_LIST_MY_FAIL"


def order_create_reducer(state: Optional[dict], action: dict) -> dict:
    state = {} if state is None else state
    kind = action.get("type")
    if kind == ORDER_CREATE_REQUEST:
        return {"loading": True}
    if kind == ORDER_CREATE_SUCCESS:
        return {"loading": False, "success": True, "order": action.get("payload")}
    if kind == ORDER_CREATE_FAIL:
        return {"loading": False, "error": action.get("payload")}
    if kind == ORDER_CREATE_RESET:
        return {}
    return state


def order_details_reducer(state: Optional[dict], action: dict) -> dict:
    if state is None:
        state = {"loading": True, "orderItems": [], "shippingAddress": {}}
    kind = action.get("type")
    if kind == ORDER_DETAILS_REQUEST:
        return {**state, "loading": True}
    if kind == ORDER_DETAILS_SUCCESS:
        return {"loading": False, "order": action.get("payload")}
    if kind == ORDER_DETAILS_FAIL:
        return {"loading": False, "error": action.get("payload")}
    return state


def order_pay_reducer(state: Optional[dict], action: dict) -> dict:
    state = {} if state is None else state
    kind = action.get("type")
    if kind == ORDER_PAY_REQUEST:
        return {"loading": True}
    if kind == ORDER_PAY_SUCCESS:
        return {"loading": False, "success": True}
    if kind == ORDER_PAY_FAIL:
        return {"loading": False, "error": action.get("payload")}
    return state


def order_list_my_reducer(state: Optional[dict], action: dict) -> dict:
    state = {"orders": []} if state is None else state
    kind = action.get("type")
    if kind == ORDER_LIST_MY_REQUEST:
        return {"loading": True}
    if kind == ORDER_LIST_MY_SUCCESS:
        return {"loading": False, "orders": action.get("payload")}
    if kind == ORDER_LIST_MY_FAIL:
        return {"loading": False, "error": action.get("payload")}
    return state


ORDER_REDUCERS = {
    "orderCreate": order_create_reducer,
    "orderDetails": order_details_reducer,
    "orderPay": order_pay_reducer,
    "orderListMy": order_list_my_reducer,
}


def run_order_action(dispatch: Callable[[dict], None], prefix: str, call: Callable[[], Any]):
    """Dispatch ``<prefix>_REQUEST``, run ``call``, then ``_SUCCESS`` with its result or ``_FAIL`` with the message."""
    dispatch({"type": f"{prefix}_REQUEST"})
    try:
        result = call()
    except ApiError as exc:
        dispatch({"type": f"{prefix}_FAIL", "payload": exc.message})
        return None
    dispatch({"type": f"{prefix}_SUCCESS", "payload": result})
    return result


class OrderStore:
    def __init__(self, client: StorefrontClient):
        self.client = client
        self.state = {key: reducer(None, {}) for key, reducer in ORDER_REDUCERS.items()}

    def dispatch(self, action: dict):
        for key, reducer in ORDER_REDUCERS.items():
            self.state[key] = reducer(self.state[key], action)

    def create_order(self, payload: dict):
        return run_order_action(self.dispatch, "ORDER_CREATE", lambda: self.client.create_order(payload))

    def reset_order_create(self):
        self.dispatch({"type": ORDER_CREATE_RESET})

    def get_order_details(self, order_id: str):
        return run_order_action(self.dispatch, "ORDER_DETAILS", lambda: self.client.get_order(order_id))

    def pay_order(self, order_id: str, payment_result: dict):
        return run_order_action(self.dispatch, "ORDER_PAY", lambda: self.client.pay_order(order_id, payment_result))

    def list_my_orders(self):
        return run_order_action(self.dispatch, "ORDER_LIST_MY", self.client.list_my_orders)
