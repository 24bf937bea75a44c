import logging

import jwt
from flask import Blueprint, jsonify, request
from pydantic import ValidationError as RequestValidationError

from backend.api.helpers import error_response, request_deadline, validation_response
from backend.auth.auth_middleware import STAFF_ROLE, STUDENT_KIND, is_self_or_staff, is_staff, require_auth
from backend.dto.request import (
    AdminResetPasswordRequest,
    CreateStudentRequest,
    StudentLoginRequest,
    UpdateStudentRequest,
)
from backend.dto.response import StudentResponse
from backend.factories.service_factory import ServiceFactory
from shared.modules.errors import PortalError
from shared.modules.log.error_logger import JWT_FAILED_TO_GENERATE, log_error_with_level
from shared.modules.student.models.student import STUDENT_ROLE, Student

bp = Blueprint("student_controller", __name__, url_prefix="/api/v1")
logger = logging.getLogger(__name__)


def _student_claims(student: Student) -> dict:
    return {
        "first_name": student.first_name,
        "last_name": student.last_name,
        "department": student.department,
        "student_id": student.student_id,
        "is_active": student.is_active,
    }


def _public_user(student: Student) -> dict:
    return {
        "id": student.id,
        "first_name": student.first_name,
        "last_name": student.last_name,
        "email": student.email,
        "student_id": student.student_id,
        "department": student.department,
        "role": STUDENT_ROLE,
    }


@bp.route("/signup", methods=["POST"])
def signup():
    """
    Create a student account and return an access token for it.

    payload = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "student_id": "S1",
        "email": "a@x.com",
        "password": "Abcdef12",
        "department": "CS"
    }
    """
    try:
        payload = CreateStudentRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    students = ServiceFactory.student_repository()
    tokens = ServiceFactory.token_service()
    student = Student(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        student_id=payload.student_id,
        department=payload.department,
    )

    try:
        result = students.create_student(student, payload.password, request_deadline())
    except PortalError as e:
        return error_response(e)

    try:
        token = tokens.generate_token(student.student_id, STUDENT_KIND, student.email, STUDENT_ROLE, _student_claims(student))
    except jwt.PyJWTError as e:
        log_error_with_level(logger, "error", JWT_FAILED_TO_GENERATE, e, student_id=student.student_id)
        return jsonify({
            "msg": "User created successfully. Please login to get access token.",
            "student_id": result.value,
            "warning": "Token generation failed - please login manually",
        }), 200

    return jsonify({
        "msg": "User created successfully",
        "student_id": result.value,
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": tokens.expires_in,
        "user": _public_user(student),
    }), 201


@bp.route("/login", methods=["POST"])
def login():
    try:
        payload = StudentLoginRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    students = ServiceFactory.student_repository()
    tokens = ServiceFactory.token_service()
    deadline = request_deadline()

    try:
        student = students.verify_password(payload.student_id, payload.password.strip(), deadline)
    except PortalError as e:
        return error_response(e)

    try:
        students.record_login(student.student_id, deadline)
    except PortalError as e:
        logger.warning(f"Failed to record login for {student.student_id}: {e}")

    token = tokens.generate_token(student.student_id, STUDENT_KIND, student.email, STUDENT_ROLE, _student_claims(student))
    return jsonify({
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": tokens.expires_in,
        "user": _public_user(student),
    }), 200


@bp.route("/student/<student_id>", methods=["GET"])
@require_auth()
def get_student(student_id):
    try:
        student = ServiceFactory.student_repository().get_student_by_id(student_id, request_deadline())
    except PortalError as e:
        return error_response(e)

    return jsonify({
        "message": "Student retrieved successfully",
        "data": StudentResponse.from_student(student).model_dump(mode="json"),
    }), 200


@bp.route("/student/<student_id>", methods=["PATCH"])
@require_auth()
def update_student(student_id):
    if not is_self_or_staff(student_id, STUDENT_KIND):
        return jsonify({"error": "insufficient permissions"}), 403

    try:
        payload = UpdateStudentRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    updates = payload.model_dump(exclude_unset=True)
    if "is_active" in updates and not is_staff():
        return jsonify({"error": "only staff can change account status"}), 403

    try:
        result = ServiceFactory.student_repository().update_student(student_id, updates, request_deadline())
    except PortalError as e:
        return error_response(e)

    return jsonify({
        "message": "Student updated successfully",
        "data": StudentResponse.from_student(result.value).model_dump(mode="json"),
    }), 200


@bp.route("/student/<student_id>", methods=["DELETE"])
@require_auth(roles=[STAFF_ROLE])
def delete_student(student_id):
    try:
        ServiceFactory.student_repository().delete_student(student_id, request_deadline())
    except PortalError as e:
        return error_response(e)

    return jsonify({"message": "Student deleted successfully"}), 200


@bp.route("/admin/reset-password", methods=["POST"])
@require_auth(roles=[STAFF_ROLE])
def reset_password():
    try:
        payload = AdminResetPasswordRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except RequestValidationError as e:
        return validation_response(e)

    try:
        ServiceFactory.student_repository().reset_password(payload.student_id, payload.new_password, request_deadline())
    except PortalError as e:
        return error_response(e)

    return jsonify({"message": "Password reset successfully", "success": True}), 200
