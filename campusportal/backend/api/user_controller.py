import logging

from flask import Blueprint, jsonify, request
from pydantic import ValidationError as RequestValidationError

from backend.api.helpers import error_response, request_deadline, validation_response
from backend.auth.auth_middleware import USER_KIND, is_self_or_staff, is_staff, optional_claims, require_auth
from backend.dto.request import CreateUserRequest, ResetUserPasswordRequest, UpdateUserRequest, UserLoginRequest
from backend.dto.response import UserResponse
from backend.factories.service_factory import ServiceFactory
from shared.modules.errors import PortalError
from shared.modules.user.enums.user_role_enum import UserRole
from shared.modules.user.models.user import User

bp = Blueprint("user_controller", __name__, url_prefix="/api/v1/users")
logger = logging.getLogger(__name__)


@bp.route("", methods=["POST"])
def create_user():
    """
    Public signup for users. Only an authenticated staff caller may create an
    account with a role other than USER.
    """
    try:
        payload = CreateUserRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    if payload.role != UserRole.USER and not is_staff(optional_claims() or {}):
        return jsonify({"error": "only staff can assign roles", "code": "FORBIDDEN"}), 403

    user = User(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
        role=payload.role,
        user_id=payload.user_id or "",
    )
    try:
        result = ServiceFactory.user_repository().create_user(user, payload.password, request_deadline())
    except PortalError as e:
        return error_response(e)

    return jsonify({"id": result.value, "data": UserResponse.from_user(user).model_dump(mode="json")}), 201


@bp.route("/login", methods=["POST"])
def login():
    try:
        payload = UserLoginRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    tokens = ServiceFactory.token_service()
    try:
        user = ServiceFactory.user_repository().verify_password(payload.identifier, payload.password, request_deadline())
    except PortalError as e:
        return error_response(e)

    token = tokens.generate_token(
        user.user_id, USER_KIND, user.email, user.role, {"first_name": user.first_name, "last_name": user.last_name}
    )
    return jsonify({
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": tokens.expires_in,
        "user": UserResponse.from_user(user).model_dump(mode="json"),
    }), 200


@bp.route("/<identifier>", methods=["GET"])
@require_auth()
def get_user(identifier):
    try:
        user = ServiceFactory.user_repository().get_user_by_id(identifier, request_deadline())
    except PortalError as e:
        return error_response(e)

    return jsonify({"data": UserResponse.from_user(user).model_dump(mode="json")}), 200


@bp.route("/<identifier>", methods=["PATCH"])
@require_auth()
def update_user(identifier):
    try:
        payload = UpdateUserRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    updates = payload.model_dump(exclude_unset=True)
    users = ServiceFactory.user_repository()
    deadline = request_deadline()
    try:
        # permission is checked against the stored user_id, whichever identifier form was used
        target = users.get_user_by_id(identifier, deadline)
        if not is_self_or_staff(target.user_id, USER_KIND):
            return jsonify({"error": "insufficient permissions"}), 403
        if "role" in updates and not is_staff():
            return jsonify({"error": "only staff can change roles", "code": "FORBIDDEN"}), 403
        result = users.update_user(identifier, updates, deadline)
    except PortalError as e:
        return error_response(e)

    return jsonify({"data": UserResponse.from_user(result.value).model_dump(mode="json")}), 200


@bp.route("/<identifier>", methods=["DELETE"])
@require_auth()
def delete_user(identifier):
    users = ServiceFactory.user_repository()
    deadline = request_deadline()
    try:
        target = users.get_user_by_id(identifier, deadline)
        if not is_self_or_staff(target.user_id, USER_KIND):
            return jsonify({"error": "insufficient permissions"}), 403
        users.delete_user(identifier, deadline)
    except PortalError as e:
        return error_response(e)

    return jsonify({"message": "User deleted successfully"}), 200


@bp.route("/<identifier>/reset-password", methods=["POST"])
@require_auth()
def reset_password(identifier):
    try:
        payload = ResetUserPasswordRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    users = ServiceFactory.user_repository()
    deadline = request_deadline()
    try:
        target = users.get_user_by_id(identifier, deadline)
        if not is_self_or_staff(target.user_id, USER_KIND):
            return jsonify({"error": "insufficient permissions"}), 403
        users.reset_password(identifier, payload.new_password, deadline)
    except PortalError as e:
        return error_response(e)

    return jsonify({"message": "Password reset successfully", "success": True}), 200
