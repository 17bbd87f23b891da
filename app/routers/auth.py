from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.auth import get_current_user_id
from app.database import get_db
from app.models.user import User
from app.schemas.user import UserResponse, RegisterRequest

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/me", response_model=UserResponse)
def me(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Current user profile."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/register")
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create or update a user from the identity provider (id is the provider's user id)."""
    if not body.id or not body.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing id or email")

    user = db.query(User).filter(User.id == body.id).first()
    if user:
        user.email = body.email
        user.name = body.name
    else:
        db.add(User(id=body.id, email=body.email, name=body.name))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    return {"success": True}


@router.post("/logout")
def logout():
    """Sessions live at the identity provider; nothing to clear server-side."""
    return {"success": True}
