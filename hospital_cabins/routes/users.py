# hospital_cabins/routes/users.py
import logging

from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.orm import Session
from hospital_cabins import models, schemas, database, auth

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


def _create_user(user: schemas.UserCreate, db: Session, is_admin: bool) -> models.User:
    existing_user = db.query(models.User).filter(
        (models.User.email == user.email) | (models.User.username == user.username)
    ).first()
    if existing_user:
        raise HTTPException(status_code=400, detail="Email or username already registered")

    new_user = models.User(
        username=user.username,
        email=user.email,
        password=auth.get_password_hash(user.password),
        full_name=user.full_name,
        is_admin=is_admin
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info("Registered %s %s", "admin" if is_admin else "patient", new_user.email)
    return new_user

# ✅ Patient Registration
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_user(user: schemas.UserCreate, db: Session = Depends(database.get_db)):
    new_user = _create_user(user, db, is_admin=False)
    return {"message": "User registered successfully", "id": new_user.id}

# ✅ Admin Registration (Admin Only - Protected)
@router.post("/admin/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(auth.verify_admin_user)])
def register_admin(user: schemas.UserCreate, db: Session = Depends(database.get_db)):
    new_admin = _create_user(user, db, is_admin=True)
    return {"message": f"Admin {new_admin.email} registered successfully", "id": new_admin.id}

# ✅ Login (JWT)
@router.post("/login")
def login_user(user: schemas.UserLogin, db: Session = Depends(database.get_db)):
    db_user = auth.authenticate_user(db, user.email, user.password)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = auth.create_access_token(db_user)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "username": db_user.username,
        "email": db_user.email,
        "is_admin": db_user.is_admin
    }

@router.get("/me")
def read_current_user(current_user: models.User = Depends(auth.get_current_user)):
    return {
        "id": current_user.id,
        "username": current_user.username,
        "email": current_user.email,
        "full_name": current_user.full_name,
        "is_admin": current_user.is_admin,
        "role": auth.role_of(current_user)
    }
