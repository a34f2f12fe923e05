"""Session-cookie identity helpers shared by the JSON blueprints."""
from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

from flask import g, request, session
from pydantic import BaseModel

from apothecary.errors import AuthenticationError, ForbiddenError
from apothecary.models import User

ModelT = TypeVar("ModelT", bound=BaseModel)


def current_user() -> Optional[User]:
    return getattr(g, "current_user", None)


def require_user() -> User:
    user = current_user()
    if "user_id" not in session or user is None:
        raise AuthenticationError("Not authenticated")
    return user


def require_practitioner() -> User:
    user = require_user()
    if not user.is_practitioner:
        raise ForbiddenError("Practitioner access required")
    return user


def require_admin() -> User:
    user = require_user()
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


def parse_body(model: Type[ModelT]) -> ModelT:
    """Validate the JSON body; ``ValidationError`` is turned into a 400 by the app."""
    data: Any = request.get_json(silent=True)
    if data is None:
        data = {}
    return model.model_validate(data)


def int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        return default
