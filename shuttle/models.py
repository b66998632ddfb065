from sqlalchemy import Column, BigInteger, Integer, String, Boolean, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shuttle.database import Base

# SQLite only autoincrements INTEGER primary keys
PrimaryKey = BigInteger().with_variant(Integer(), "sqlite")

# ================================
# Companies & Routes
# ================================
class Company(Base):
    __tablename__ = "companies"

    id = Column(PrimaryKey, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(20))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    routes = relationship("Route", back_populates="company")

class Route(Base):
    __tablename__ = "routes"

    id = Column(PrimaryKey, primary_key=True, index=True)
    provider = Column(String(255), nullable=False, index=True)
    departure = Column(String(255), nullable=False, index=True)
    arrival = Column(String(255), nullable=False, index=True)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    vehicle_type = Column(String(50), default="Bus")
    seats = Column(Integer, default=50)
    company_id = Column(PrimaryKey, ForeignKey("companies.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship("Company", back_populates="routes")
    bookings = relationship("Booking", back_populates="route")

# ================================
# Users & Admins
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(PrimaryKey, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(20), default="")
    # NULL for travellers created through a guest booking
    password = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    bookings = relationship("Booking", back_populates="user")

class Admin(Base):
    __tablename__ = "admins"

    id = Column(PrimaryKey, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(String(50), default="admin")
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(PrimaryKey, primary_key=True, index=True)
    route_id = Column(PrimaryKey, ForeignKey("routes.id"), nullable=False, index=True)
    user_id = Column(PrimaryKey, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(10), nullable=False)
    payment_reference = Column(String(255), unique=True)
    pickup_address = Column(String(255))
    amount = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    route = relationship("Route", back_populates="bookings")
    user = relationship("User", back_populates="bookings")
