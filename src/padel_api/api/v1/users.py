# src/padel_api/api/v1/users.py

import logging
from typing import FrozenSet, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.security import OAuth2PasswordBearer

from padel_api.core import security
from padel_api.core.config import settings
from padel_api.core.errors import DuplicateUserError, ErrorKind, StoreError, UserServiceError
from padel_api.crud import user as user_crud
from padel_api.schemas import user as user_schema
from padel_api.services import images, user_rules

logger = logging.getLogger(__name__)

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/users/login", auto_error=False)

INVALID_CREDENTIALS = "Incorrect user or password."


async def get_current_user(token: Optional[str] = Depends(oauth2_scheme)) -> user_schema.UserInDB:
    """Resolves the bearer token to the stored user it was issued for."""
    if not token:
        raise UserServiceError(ErrorKind.UNAUTHENTICATED, "Authentication required.")

    user_id = security.decode_access_token(token)
    if user_id is None:
        raise UserServiceError(ErrorKind.UNAUTHENTICATED, "Invalid or expired token.")

    user = await user_crud.get_user_by_id(user_id)
    if user is None:
        raise UserServiceError(ErrorKind.UNAUTHENTICATED, "Invalid or expired token.")
    return user


def _user_view(user: user_schema.UserInDB, fields: FrozenSet[str] = user_rules.PRIVILEGED_FIELDS) -> dict:
    return user_rules.project(user.model_dump(by_alias=True), fields)


def _lookup_result(users: List[dict], criterion: str) -> dict:
    if not users:
        return {"message": f"No users found with {criterion}.", "users": []}
    return {"message": f"{len(users)} user(s) found with {criterion}.", "users": users}


def _clean(value: Optional[str]) -> Optional[str]:
    """Strips a form value; blank values count as not supplied."""
    if value is None:
        return None
    return value.strip() or None


def _has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


@router.post(
    "",
    response_model=user_schema.UserResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    role: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
):
    """Registers a new account. An avatar image is optional."""
    params_error = user_rules.registration_error(name, email, password, phone, role)
    if params_error:
        raise UserServiceError(ErrorKind.VALIDATION, params_error)

    name, email, phone_number = name.strip(), email.strip(), int(phone.strip())

    existing = await user_crud.find_matching(name=name, email=email, phone=phone_number)
    if existing:
        fields = user_rules.duplicated_fields(existing, name, email, phone_number)
        raise UserServiceError(ErrorKind.DUPLICATE, user_rules.duplicate_message(fields))

    if role == user_rules.ADMIN_ROLE:
        raise UserServiceError(ErrorKind.FORBIDDEN, "You are not allowed to register with the admin role.")

    image_path = await images.save_image(image) if _has_file(image) else settings.DEFAULT_IMAGE

    try:
        new_user = await user_crud.create_user(
            user_schema.UserCreate(name=name, email=email, password=password, phone=phone_number, image=image_path)
        )
    except (DuplicateUserError, StoreError):
        images.delete_image(image_path)
        raise

    logger.info(f"--- [REGISTER] User '{new_user.name}' created with id {new_user.id}. ---")
    message = "User created successfully."
    if not _has_file(image):
        message += " No image was provided; the default avatar is used."
    return {"message": message, "user": _user_view(new_user)}


@router.post("/login", response_model=user_schema.LoginResponse, response_model_exclude_none=True)
async def login_user(credentials: user_schema.LoginRequest):
    """
    Logs in with a name or an email plus the password.
    Unknown users and wrong passwords get the same answer.
    """
    logger.info("--- [LOGIN ATTEMPT] ---")
    user = await user_crud.get_user_by_identity(credentials.user_data)

    if user is None or not security.verify_password(credentials.password, user.password):
        logger.warning(f"--- [LOGIN FAILED] for '{credentials.user_data}'. ---")
        raise UserServiceError(ErrorKind.UNAUTHENTICATED, INVALID_CREDENTIALS)

    token = security.create_access_token(data={"sub": str(user.id)})
    logger.info(f"--- [LOGIN SUCCESS] user id {user.id}. ---")
    return {"message": "Login successful.", "user": _user_view(user), "token": token}


@router.get("", response_model=user_schema.UserListResponse, response_model_exclude_none=True)
async def read_users(current_user: user_schema.UserInDB = Depends(get_current_user)):
    fields = user_rules.visible_fields(current_user.role)
    users = await user_crud.list_users({}, fields)
    return {"message": "Complete list of users.", "users": users}


@router.get("/name/{name}", response_model=user_schema.UserListResponse, response_model_exclude_none=True)
async def read_users_by_name(name: str, current_user: user_schema.UserInDB = Depends(get_current_user)):
    """Case-insensitive partial match on the name."""
    fields = user_rules.visible_fields(current_user.role)
    users = await user_crud.find_users_by_name(name, fields)
    return _lookup_result(users, f"name '{name}'")


@router.get("/phone/{phone}", response_model=user_schema.UserListResponse, response_model_exclude_none=True)
async def read_users_by_phone(phone: str, current_user: user_schema.UserInDB = Depends(get_current_user)):
    phone_error = user_rules.phone_error(phone)
    if phone_error:
        raise UserServiceError(ErrorKind.VALIDATION, phone_error)

    fields = user_rules.visible_fields(current_user.role)
    users = await user_crud.find_users_by_phone(int(phone), fields)
    return _lookup_result(users, f"phone {phone}")


@router.put("/{user_id}", response_model=user_schema.UserResponse, response_model_exclude_none=True)
async def update_user(
    user_id: str,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: user_schema.UserInDB = Depends(get_current_user),
):
    """Updates the caller's own account, or any account for admins."""
    denied = user_rules.ownership_error(user_id, current_user)
    if denied:
        raise UserServiceError(ErrorKind.FORBIDDEN, denied)

    name, email, phone = _clean(name), _clean(email), _clean(phone)
    password = password or None

    params_error = user_rules.update_error(email, password, phone)
    if params_error:
        raise UserServiceError(ErrorKind.VALIDATION, params_error)
    phone_number = int(phone) if phone is not None else None

    existing = await user_crud.find_matching(name=name, email=email, phone=phone_number, exclude_id=user_id)
    if existing:
        fields = user_rules.duplicated_fields(existing, name, email, phone_number)
        raise UserServiceError(ErrorKind.DUPLICATE, user_rules.duplicate_message(fields))

    old_user = await user_crud.get_user_by_id(user_id)
    if old_user is None:
        raise UserServiceError(ErrorKind.NOT_FOUND, "User not found.")

    new_image = await images.save_image(image) if _has_file(image) else None

    changes = user_schema.UserUpdate(name=name, email=email, password=password, phone=phone_number, image=new_image)
    try:
        updated_user = await user_crud.update_user(user_id, changes)
    except (DuplicateUserError, StoreError):
        images.delete_image(new_image)
        raise

    if updated_user is None:
        images.delete_image(new_image)
        raise UserServiceError(ErrorKind.NOT_FOUND, "User not found.")

    if new_image:
        images.delete_image(old_user.image)

    logger.info(f"--- [UPDATE] User {user_id} updated by {current_user.id}. ---")
    return {"message": "User data updated successfully.", "user": _user_view(updated_user)}


@router.delete("/{user_id}", response_model=user_schema.UserResponse, response_model_exclude_none=True)
async def delete_user(user_id: str, current_user: user_schema.UserInDB = Depends(get_current_user)):
    """Deletes an account and, best-effort, its avatar file."""
    denied = user_rules.ownership_error(user_id, current_user)
    if denied:
        raise UserServiceError(ErrorKind.FORBIDDEN, denied)

    deleted_user = await user_crud.delete_user(user_id)
    if deleted_user is None:
        raise UserServiceError(ErrorKind.NOT_FOUND, "User not found.")

    images.delete_image(deleted_user.image)
    logger.info(f"--- [DELETE] User {user_id} deleted by {current_user.id}. ---")
    return {"message": "User deleted successfully.", "user": _user_view(deleted_user)}
