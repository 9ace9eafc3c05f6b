from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from firebase_admin import auth
from pydantic import BaseModel

from libs.firebase.client import initialize_firebase_app


class User(BaseModel):
    uid: str
    email: str | None = None
    is_admin: bool = False


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    initialize_firebase_app()
    try:
        decoded_token = auth.verify_id_token(token)
        return User(
            uid=decoded_token["uid"],
            email=decoded_token.get("email"),
            is_admin=decoded_token.get("admin", False) is True,
        )
    except (ValueError, auth.InvalidIdTokenError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        # Catch any other unexpected errors during token verification
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Could not validate credentials: {e}",
        )


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only users whose token carries the ``admin`` custom claim."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
