"""Request and response models for the HTTP API."""

from pydantic import BaseModel, Field

from nutriscan.domain.analysis import Language
from nutriscan.domain.items import FoodItem
from nutriscan.domain.users import UserTier
from nutriscan.services.controller import AuthScreen, View


class PasswordSignIn(BaseModel):
    """Email/password sign-in or account creation."""

    email: str
    password: str
    create_account: bool = False


class IdTokenSignIn(BaseModel):
    """Token from the provider's interactive sign-in flow; empty if abandoned."""

    id_token: str = ""


class NavigateRequest(BaseModel):
    view: View


class LanguageRequest(BaseModel):
    language: Language


class TextScanRequest(BaseModel):
    description: str = Field(min_length=1)


class UpgradeRequest(BaseModel):
    tier: UserTier


class UserView(BaseModel):
    id: str
    name: str
    email: str
    picture: str
    tier: UserTier
    scan_count: int


class SessionView(BaseModel):
    """Snapshot of the controller state."""

    auth_loading: bool
    auth_screen: AuthScreen
    view: View
    language: Language
    user: UserView | None
    selected_item_id: str | None
    history_size: int
    is_logging_in: bool
    login_error: str | None
    is_analyzing: bool
    scan_error: str | None
    is_rescanning: bool
    is_translating: bool
    pending_delete_id: str | None


class HistoryView(BaseModel):
    items: list[FoodItem]


class PlanView(BaseModel):
    tier: UserTier
    price: str
    monthly_scans: int | None
    public_data: bool
    priority_support: bool
    is_current: bool


class PricingView(BaseModel):
    current_tier: UserTier
    plans: list[PlanView]


class ShareView(BaseModel):
    url: str
    text: str
    facebook: str
    twitter: str
    whatsapp: str
