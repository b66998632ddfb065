#!/usr/bin/env python3

from datetime import datetime

from shuttle.database import SessionLocal, init_db
from shuttle.models import Booking, Company, Route, User

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for the Shuttle Booking Marketplace...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Booking).delete()
        db.query(Route).delete()
        db.query(User).delete()
        db.query(Company).delete()

        # 1. Create Companies
        print("Creating companies...")
        companies = [
            Company(name="TransEuro", phone="+40212345678"),
            Company(name="EuroShuttle", phone="+40264123456"),
        ]
        db.add_all(companies)
        db.flush()

        trans_euro, euro_shuttle = companies

        # 2. Create Routes
        print("Creating routes...")
        routes = [
            Route(
                provider="TransEuro",
                departure="Bucharest",
                arrival="Vienna",
                departure_time=datetime(2025, 7, 22, 8, 0),
                arrival_time=datetime(2025, 7, 22, 20, 0),
                price=60,
                seats=50,
                vehicle_type="Bus",
                company_id=trans_euro.id
            ),
            Route(
                provider="EuroShuttle",
                departure="Cluj-Napoca",
                arrival="Munich",
                departure_time=datetime(2025, 7, 23, 9, 0),
                arrival_time=datetime(2025, 7, 23, 21, 0),
                price=75,
                seats=30,
                vehicle_type="Shuttle",
                company_id=euro_shuttle.id
            ),
        ]
        db.add_all(routes)
        db.flush()

        # 3. Create travellers (booking-created accounts have no password)
        print("Creating demo travellers...")
        users = [
            User(name="Alice Smith", email="alice@example.com", phone="+40712345678"),
            User(name="Bob Johnson", email="bob@example.com", phone="+40798765432"),
        ]
        db.add_all(users)
        db.flush()

        # 4. Create Bookings
        print("Creating demo bookings...")
        bookings = [
            Booking(
                route_id=routes[0].id,
                user_id=users[0].id,
                status="confirmed",
                payment_status="not_required",
                payment_method="cash",
                pickup_address="Bucharest",
                amount=routes[0].price
            ),
            Booking(
                route_id=routes[1].id,
                user_id=users[1].id,
                status="pending",
                payment_status="pending",
                payment_method="card",
                pickup_address="Cluj-Napoca",
                amount=routes[1].price
            ),
        ]
        db.add_all(bookings)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print("Created:")
        print(f"  - {len(companies)} companies")
        print(f"  - {len(routes)} routes")
        print(f"  - {len(users)} travellers")
        print(f"  - {len(bookings)} bookings")
        print("Create the first admin with POST /api/v1/admin/auth/setup and ADMIN_SETUP_KEY.")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
