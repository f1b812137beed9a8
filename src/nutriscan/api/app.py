"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from nutriscan.api.models import (
    HistoryView,
    IdTokenSignIn,
    LanguageRequest,
    NavigateRequest,
    PasswordSignIn,
    PlanView,
    PricingView,
    SessionView,
    ShareView,
    TextScanRequest,
    UpgradeRequest,
    UserView,
)
from nutriscan.app_logging import configure_logging
from nutriscan.containers import AppContainer
from nutriscan.domain.errors import AnalysisError, AnalysisErrorKind
from nutriscan.domain.items import FoodItem
from nutriscan.domain.pricing import PLANS, is_current_plan
from nutriscan.domain.users import UserTier
from nutriscan.services.controller import SessionController
from nutriscan.services.sharing import build_share_links

_UNPROCESSABLE = 422


def _controller(request: Request) -> SessionController:
    container: AppContainer = request.app.state.container
    return container.controller


def require_user(
    controller: SessionController = Depends(_controller),
) -> SessionController:
    """Reject requests made while nobody is signed in."""
    if not controller.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return controller


def _session_view(controller: SessionController) -> SessionView:
    user = controller.user
    selected = controller.selected_item
    return SessionView(
        auth_loading=controller.auth_loading,
        auth_screen=controller.auth_screen,
        view=controller.view,
        language=controller.language,
        user=(
            UserView(
                id=user.id,
                name=user.name,
                email=user.email,
                picture=user.picture,
                tier=user.tier,
                scan_count=user.scan_count,
            )
            if user
            else None
        ),
        selected_item_id=selected.id if selected else None,
        history_size=len(controller.history),
        is_logging_in=controller.is_logging_in,
        login_error=controller.login_error,
        is_analyzing=controller.is_analyzing,
        scan_error=controller.scan_error,
        is_rescanning=controller.is_rescanning,
        is_translating=controller.is_translating,
        pending_delete_id=controller.pending_delete_id,
    )


def _get_item(controller: SessionController, item_id: str) -> FoodItem:
    item = controller.history.get(item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return item


def _captured(item: FoodItem | None) -> FoodItem:
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Session changed while the scan was running",
        )
    return item


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.controller.start()
        except Exception:
            logger.exception("Failed to start the session controller")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(AnalysisError)
    async def analysis_error_handler(
        request: Request, exc: AnalysisError
    ) -> JSONResponse:
        status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if exc.kind == AnalysisErrorKind.BUSY
            else _UNPROCESSABLE
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.kind.value, "message": exc.user_message},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def session(
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        return _session_view(controller)

    @app.post("/auth/login-screen")
    async def show_login(
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        controller.show_login()
        return _session_view(controller)

    @app.post("/auth/home")
    async def back_to_home(
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        controller.back_to_home()
        return _session_view(controller)

    @app.post("/auth/guest")
    async def guest_login(
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        controller.continue_as_guest()
        return _session_view(controller)

    @app.post("/auth/password")
    async def password_login(
        payload: PasswordSignIn,
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        if payload.create_account:
            controller.sign_up(payload.email, payload.password)
        else:
            controller.sign_in_with_password(payload.email, payload.password)
        await controller.drain()
        return _session_view(controller)

    @app.post("/auth/id-token")
    async def id_token_login(
        payload: IdTokenSignIn,
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        controller.sign_in_interactive(payload.id_token)
        await controller.drain()
        return _session_view(controller)

    @app.post("/auth/logout")
    async def logout(
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        controller.sign_out()
        await controller.drain()
        return _session_view(controller)

    @app.post("/navigate")
    async def navigate(
        payload: NavigateRequest,
        controller: SessionController = Depends(require_user),
    ) -> SessionView:
        controller.navigate(payload.view)
        return _session_view(controller)

    @app.put("/language")
    async def change_language(
        payload: LanguageRequest,
        controller: SessionController = Depends(_controller),
    ) -> SessionView:
        await controller.change_language(payload.language)
        return _session_view(controller)

    @app.post("/scan/text")
    async def scan_text(
        payload: TextScanRequest,
        controller: SessionController = Depends(require_user),
    ) -> FoodItem:
        try:
            item = await controller.scan_text(payload.description)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        return _captured(item)

    @app.post("/scan/image")
    async def scan_image(
        request: Request,
        filename: str = Query(default="photo.jpg"),
        controller: SessionController = Depends(require_user),
    ) -> FoodItem:
        image_bytes = await request.body()
        if not image_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Empty image"
            )
        return _captured(await controller.scan_image(image_bytes, filename))

    @app.get("/history")
    async def history(
        controller: SessionController = Depends(require_user),
    ) -> HistoryView:
        return HistoryView(items=controller.history.items())

    @app.get("/history/{item_id}")
    async def item_detail(
        item_id: str,
        controller: SessionController = Depends(require_user),
    ) -> FoodItem:
        item = controller.select_item(item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return item

    @app.delete("/history/{item_id}")
    async def delete_item(
        item_id: str,
        controller: SessionController = Depends(require_user),
    ) -> SessionView:
        _get_item(controller, item_id)
        controller.request_delete(item_id)
        controller.confirm_delete()
        return _session_view(controller)

    @app.post("/history/{item_id}/rescan")
    async def rescan_item(
        item_id: str,
        controller: SessionController = Depends(require_user),
    ) -> FoodItem:
        original = _get_item(controller, item_id)
        updated = await controller.rescan(item_id)
        return updated or controller.history.get(item_id) or original

    @app.get("/history/{item_id}/share")
    async def share_item(
        item_id: str,
        url: str = Query(min_length=1),
        controller: SessionController = Depends(require_user),
    ) -> ShareView:
        links = build_share_links(_get_item(controller, item_id), url)
        return ShareView(
            url=links.url,
            text=links.text,
            facebook=links.facebook,
            twitter=links.twitter,
            whatsapp=links.whatsapp,
        )

    @app.get("/pricing")
    async def pricing(
        controller: SessionController = Depends(_controller),
    ) -> PricingView:
        tier = controller.user.tier if controller.user else UserTier.GUEST
        return PricingView(
            current_tier=tier,
            plans=[
                PlanView(
                    tier=plan.tier,
                    price=plan.price,
                    monthly_scans=plan.monthly_scans,
                    public_data=plan.public_data,
                    priority_support=plan.priority_support,
                    is_current=is_current_plan(plan, tier),
                )
                for plan in PLANS
            ],
        )

    @app.post("/pricing/upgrade")
    async def upgrade(
        payload: UpgradeRequest,
        controller: SessionController = Depends(require_user),
    ) -> SessionView:
        controller.upgrade(payload.tier)
        return _session_view(controller)

    return app
