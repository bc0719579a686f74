"""FastAPI surface exposing the wardrobe, outfit, collection and AI operations."""

import contextlib
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from armario_app.app import ArmarioApp
from armario_app.logging_config import configure_logging
from logic.ai_contract import ResolvedSuggestion, SuggestionView
from logic.errors import (
    AIExchangeError,
    AuthenticationRequired,
    IdentityError,
    NotFound,
    StoreError,
    ValidationFailure,
)
from logic.outfit_service import MutationResult
from logic.wardrobe_service import filter_items
from logic.validation import (
    ClothingItemDraft,
    PasswordResetForm,
    ProfileUpdateForm,
    SignInForm,
    SignUpForm,
    ValidationResult,
    validate_form,
)
from models.taxonomy import CLOTHING_TYPES, FABRICS, SEASONS


class CollectionCreateRequest(BaseModel):
    name: str = Field(..., description="Name of the new collection")
    outfit_ids: List[str] = Field(default_factory=list, description="Outfits moved into it")


class CollectionRenameRequest(BaseModel):
    new_name: str


class AutocompleteRequest(BaseModel):
    draft: ClothingItemDraft


class SuggestionRequest(BaseModel):
    occasion: str
    attempt_number: Optional[int] = None


class SaveSuggestionRequest(BaseModel):
    item_ids: List[str]
    occasion: Optional[str] = None
    name: Optional[str] = None
    collection_name: Optional[str] = None
    new_collection_name: Optional[str] = None


def _mutation_payload(result: MutationResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"status": result.status, "message": result.message, "affected": result.affected}
    if result.outfit is not None:
        payload["outfit"] = asdict(result.outfit)
    return payload


def _resolved_payload(entry: ResolvedSuggestion) -> Dict[str, Any]:
    return {
        "suggested": entry.suggested.model_dump(),
        "item": asdict(entry.item) if entry.item is not None else None,
    }


def _suggestion_payload(view: SuggestionView) -> Dict[str, Any]:
    return {
        "kind": view.kind,
        "items": [_resolved_payload(entry) for entry in view.items],
        "reasoning": view.reasoning,
        "message": view.message,
        "saveable_item_ids": view.saveable_item_ids,
    }


def _error(status_code: int, status: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status, "message": message, **extra})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFailure)
    async def _validation_failure(_: Request, exc: ValidationFailure) -> JSONResponse:
        body = ValidationResult(message=exc.message, details=[exc.to_dict()]).model_dump()
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(_: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())),
                "code": "invalid_value",
                "message": str(error.get("msg")),
            }
            for error in exc.errors()
        ]
        body = ValidationResult(message="Solicitud no válida.", details=details).model_dump()
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(AuthenticationRequired)
    async def _auth_required(_: Request, exc: AuthenticationRequired) -> JSONResponse:
        return _error(401, "unauthenticated", exc.message)

    @app.exception_handler(NotFound)
    async def _not_found(_: Request, exc: NotFound) -> JSONResponse:
        return _error(404, "not_found", str(exc))

    @app.exception_handler(StoreError)
    async def _store_error(_: Request, exc: StoreError) -> JSONResponse:
        return _error(503, "error", "No se pudo guardar el cambio. Inténtalo de nuevo.")

    @app.exception_handler(AIExchangeError)
    async def _ai_error(_: Request, exc: AIExchangeError) -> JSONResponse:
        return _error(502, "error", str(exc))

    @app.exception_handler(IdentityError)
    async def _identity_error(_: Request, exc: IdentityError) -> JSONResponse:
        return _error(400, "error", exc.message, code=exc.code)


def create_app(armario: ArmarioApp | None = None) -> FastAPI:
    """Build the FastAPI app around one :class:`ArmarioApp`."""

    configure_logging()
    armario = armario or ArmarioApp()

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        armario.shutdown()

    app = FastAPI(title="Armario", version="0.1.0", lifespan=lifespan)
    app.state.armario = armario
    _register_error_handlers(app)

    @app.get("/healthz")
    async def healthcheck() -> dict:
        """Readiness probe."""

        return {
            "status": "ok",
            "service": "armario",
            "environment": armario.config.environment or "local",
            "model": armario.config.model,
        }

    @app.get("/taxonomy")
    async def taxonomy() -> dict:
        return {"types": CLOTHING_TYPES, "seasons": SEASONS, "fabrics": FABRICS}

    # identity
    def _identity_payload() -> dict:
        identity = armario.session.identity
        if identity is None:
            return {"authenticated": False}
        return {
            "authenticated": True,
            "user_id": identity.user_id,
            "email": identity.email,
            "display_name": identity.display_name,
            "photo_url": identity.photo_url,
        }

    @app.post("/auth/sign-up")
    async def sign_up(payload: Dict[str, Any]) -> dict:
        form = validate_form(SignUpForm, payload)
        armario.session.sign_up(form.email, form.password)
        return _identity_payload()

    @app.post("/auth/sign-in")
    async def sign_in(payload: Dict[str, Any]) -> dict:
        form = validate_form(SignInForm, payload)
        armario.session.sign_in(form.email, form.password)
        return _identity_payload()

    @app.post("/auth/sign-out")
    async def sign_out() -> dict:
        armario.session.sign_out()
        return _identity_payload()

    @app.post("/auth/password-reset")
    async def password_reset(payload: Dict[str, Any]) -> dict:
        form = validate_form(PasswordResetForm, payload)
        armario.session.send_password_reset(form.email)
        return {"status": "ok", "message": "Si la cuenta existe, recibirás un email para restablecer la contraseña."}

    @app.get("/auth/me")
    async def me() -> dict:
        return _identity_payload()

    @app.patch("/auth/profile")
    async def update_profile(payload: Dict[str, Any]) -> dict:
        form = validate_form(ProfileUpdateForm, payload)
        if form.display_name is not None:
            armario.session.update_display_name(form.display_name)
        if form.new_password is not None:
            armario.session.update_password(form.new_password)
        return _identity_payload()

    # wardrobe
    @app.get("/items")
    async def list_items(
        type: Optional[str] = None,
        season: Optional[str] = None,
        fabric: Optional[str] = None,
        color: Optional[str] = None,
        query: Optional[str] = None,
    ) -> dict:
        armario.session.require_owner()
        items = armario.wardrobe_board.items
        visible = filter_items(items, {"type": type, "season": season, "fabric": fabric, "color": color, "query": query})
        return {"items": [asdict(item) for item in visible], "total": len(items)}

    @app.post("/items", status_code=201)
    async def add_item(payload: Dict[str, Any]) -> dict:
        return asdict(armario.wardrobe.add_item(payload))

    @app.patch("/items/{item_id}")
    async def update_item(item_id: str, payload: Dict[str, Any]) -> dict:
        return asdict(armario.wardrobe.update_item(item_id, payload))

    @app.delete("/items/{item_id}")
    async def delete_item(item_id: str) -> dict:
        armario.wardrobe.delete_item(item_id)
        return {"status": "ok", "message": "Prenda eliminada."}

    @app.post("/items/autocomplete")
    async def autocomplete(request: AutocompleteRequest) -> dict:
        updated = armario.autocomplete_agent.fill_draft(request.draft)
        return {"status": "ok", "draft": updated.model_dump()}

    # outfits
    @app.get("/outfits")
    async def list_outfits() -> dict:
        return {"outfits": [asdict(outfit) for outfit in armario.outfits.list_outfits()]}

    @app.post("/outfits", status_code=201)
    async def create_outfit(payload: Dict[str, Any]) -> dict:
        return asdict(armario.outfits.create_outfit(payload))

    @app.patch("/outfits/{outfit_id}")
    async def update_outfit(outfit_id: str, payload: Dict[str, Any]) -> dict:
        return asdict(armario.outfits.update_outfit(outfit_id, payload))

    @app.delete("/outfits/{outfit_id}")
    async def delete_outfit(outfit_id: str) -> dict:
        return _mutation_payload(armario.outfits.delete_outfit(outfit_id))

    @app.get("/outfits/{outfit_id}/preview")
    async def preview_outfit(outfit_id: str) -> dict:
        preview = armario.outfits.preview_outfit(outfit_id)
        return {
            "outfit": asdict(preview["outfit"]),
            "items": [asdict(item) for item in preview["items"]],
            "missing_item_ids": preview["missing_item_ids"],
        }

    @app.post("/outfits/{outfit_id}/favorite")
    async def toggle_favorite(outfit_id: str) -> dict:
        return asdict(armario.outfits.toggle_favorite(outfit_id))

    # collections
    @app.get("/collections")
    async def collections() -> dict:
        armario.session.require_owner()
        return armario.outfit_board.snapshot()

    @app.post("/collections", status_code=201)
    async def create_collection(request: CollectionCreateRequest) -> dict:
        return _mutation_payload(armario.outfits.create_collection_and_assign(request.name, request.outfit_ids))

    @app.patch("/collections/{collection_name}")
    async def rename_collection(collection_name: str, request: CollectionRenameRequest) -> dict:
        return _mutation_payload(armario.outfits.rename_collection(collection_name, request.new_name))

    @app.delete("/collections/{collection_name}")
    async def delete_collection(collection_name: str) -> dict:
        return _mutation_payload(armario.outfits.delete_collection(collection_name))

    @app.post("/collections/{collection_name}/toggle")
    async def toggle_collection(collection_name: str) -> dict:
        armario.session.require_owner()
        armario.outfit_board.toggle_group(collection_name)
        return armario.outfit_board.snapshot()

    # suggestions
    @app.post("/suggestions")
    async def suggest(request: SuggestionRequest) -> dict:
        wardrobe = armario.wardrobe.list_items()
        view = armario.suggestion_agent.suggest_view(request.occasion, wardrobe, request.attempt_number)
        return {"status": "ok", "occasion": request.occasion, "suggestion": _suggestion_payload(view)}

    @app.post("/suggestions/save", status_code=201)
    async def save_suggestion(request: SaveSuggestionRequest) -> dict:
        outfit = armario.outfits.save_from_suggestion(
            item_ids=request.item_ids,
            occasion=request.occasion,
            name=request.name,
            collection_name=request.collection_name,
            new_collection_name=request.new_collection_name,
        )
        return asdict(outfit)

    return app


def get_app() -> FastAPI:
    """Expose a FastAPI instance for ASGI servers."""

    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=int("8080"), reload=False)
