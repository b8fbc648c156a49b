# hospital_cabins/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from hospital_cabins.config import settings, configure_logging
from hospital_cabins.database import engine, Base
from hospital_cabins.routes import availability_periods, bookings, cabins, users

configure_logging()

# Create the database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Hospital Cabin Booking",
    description="Cabin reservations for patients with admin-managed availability windows",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Registering Routers
app.include_router(users.router)
app.include_router(cabins.router)
app.include_router(availability_periods.router)
app.include_router(bookings.router)

@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the Hospital Cabin Booking service"}
