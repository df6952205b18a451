from wallnest.models import CustomModel
from wallnest.users.schemas import UserCreate, UserResponse  # noqa: F401


class LoginRequest(CustomModel):
    username: str
    password: str


class Token(CustomModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
