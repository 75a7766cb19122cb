import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

from family_tree_api import config
from family_tree_api.auth_utils import get_current_claim
from family_tree_api.db import Database
from family_tree_api.errors import register_exception_handlers
from family_tree_api.repositories import MemberRepository, UserRepository
from family_tree_api.schemas import (
    APIMessage,
    LoginRequest,
    LoginResponse,
    Member,
    MemberCreate,
    MemberResponse,
    MemberUpdate,
    RegisterRequest,
    RegisterResponse,
    UserClaim,
)
from family_tree_api.services import AuthService, MemberService

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Service health checks."},
    {"name": "Auth", "description": "Registration and login."},
    {"name": "Members", "description": "Family members owned by the authenticated user."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool for the app's lifetime."""
    config.configure_logging()
    database = Database.from_env()
    database.open()
    if config.init_schema_on_startup():
        database.init_schema()
    app.state.db = database
    try:
        yield
    finally:
        database.close()


app = FastAPI(
    title="Family Tree API",
    description=(
        "Backend API for managing user accounts and their family members.\n\n"
        "Auth: Use the `Authorization: Bearer <token>` header for `/api/members` routes."
    ),
    version="1.0.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# =========================
# Dependencies
# =========================

def get_db(request: Request) -> Database:
    return request.app.state.db


def get_auth_service(db: Database = Depends(get_db)) -> AuthService:
    return AuthService(UserRepository(db))


def get_member_service(db: Database = Depends(get_db)) -> MemberService:
    return MemberService(MemberRepository(db))


@app.get("/", tags=["Health"], summary="Health check")
def health_check() -> Dict[str, str]:
    """Health check endpoint."""
    return {"message": "Welcome to the Family Tree API"}


# =========================
# Auth
# =========================

@app.post(
    "/api/auth/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Auth"],
    summary="Register",
)
def register(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> Dict[str, Any]:
    """Create a new user account."""
    user_id = auth.register(payload.username, payload.email, payload.password)
    return {"message": "User registered successfully.", "userId": user_id}


@app.post("/api/auth/login", response_model=LoginResponse, tags=["Auth"], summary="Login")
def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> Dict[str, Any]:
    """Authenticate a user and return an access token valid for one hour."""
    result = auth.login(payload.email, payload.password)
    return {"message": "Login successful.", **result}


# =========================
# Members
# =========================

@app.post(
    "/api/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Members"],
    summary="Create family member",
)
def create_member(
    payload: MemberCreate,
    claim: UserClaim = Depends(get_current_claim),
    members: MemberService = Depends(get_member_service),
) -> Dict[str, Any]:
    """Create a family member owned by the current user."""
    member = members.create(claim, payload)
    return {"message": "Family member created successfully.", "member": member}


@app.get("/api/members", response_model=List[Member], tags=["Members"], summary="List family members")
def list_members(
    claim: UserClaim = Depends(get_current_claim),
    members: MemberService = Depends(get_member_service),
) -> List[Dict[str, Any]]:
    """List the current user's family members."""
    return members.list(claim)


@app.get("/api/members/{member_id}", response_model=Member, tags=["Members"], summary="Get family member")
def get_member(
    member_id: int,
    claim: UserClaim = Depends(get_current_claim),
    members: MemberService = Depends(get_member_service),
) -> Dict[str, Any]:
    """Get one of the current user's family members."""
    return members.get(claim, member_id)


@app.put("/api/members/{member_id}", response_model=MemberResponse, tags=["Members"], summary="Update family member")
def update_member(
    member_id: int,
    payload: MemberUpdate,
    claim: UserClaim = Depends(get_current_claim),
    members: MemberService = Depends(get_member_service),
) -> Dict[str, Any]:
    """Update only the supplied fields of a family member."""
    member = members.update(claim, member_id, payload)
    return {"message": "Family member updated successfully.", "member": member}


@app.delete("/api/members/{member_id}", response_model=APIMessage, tags=["Members"], summary="Delete family member")
def delete_member(
    member_id: int,
    claim: UserClaim = Depends(get_current_claim),
    members: MemberService = Depends(get_member_service),
) -> APIMessage:
    """Delete a family member."""
    members.delete(claim, member_id)
    return APIMessage(message="Family member deleted successfully.")


# PUBLIC_INTERFACE
def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    config.configure_logging()
    uvicorn.run(app, host=config.host(), port=config.port())


if __name__ == "__main__":
    run()
