import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from barbershop.auth import jwt_handler
from barbershop.models.barber import Barber
from barbershop.models.user import User
from barbershop.routes.common import get_db

security = HTTPBearer()

ROLE_CLIENT = "client"
ROLE_BARBER = "barber"
ROLE_ADMIN = "admin"


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_barber(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Barber:
    if current_user.role != ROLE_BARBER:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Only barbers can manage their schedule.",
        )

    barber = db.query(Barber).filter(Barber.user_id == current_user.id).first()
    if barber is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Barber profile not found.",
        )
    return barber


def require_staff(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in {ROLE_BARBER, ROLE_ADMIN}:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only barbers and admins can update appointments.",
        )
    return current_user
