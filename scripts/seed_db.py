#!/usr/bin/env python
"""
Database seeding script
Populates the database with a demo admin, a client and one project for development
"""
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from content_vault.auth import get_password_hash
from content_vault.db import SessionLocal, User
from content_vault.services.content_repository import ContentRepository

DEMO_VIDEOS = ["Brand Intro", "Behind the Scenes", "Product Demo", "Testimonial", "Office Tour", "Team Reel"]
DEMO_HEADSHOTS = ["CEO Portrait", "CTO Portrait", "Team Photo"]


def seed_database():
    """Seed database with initial data"""
    db = SessionLocal()

    try:
        existing_users = db.query(User).count()
        if existing_users > 0:
            print(f"⚠️  Database already contains {existing_users} users. Skipping seed.")
            return

        print("Seeding database with initial data...")

        admin = User(
            email="admin@example.com",
            hashed_password=get_password_hash("adminpassword123"),
            first_name="Studio",
            last_name="Admin",
            is_active=True,
            is_admin=True,
        )
        client = User(
            email="client@example.com",
            hashed_password=get_password_hash("clientpassword123"),
            first_name="Demo",
            last_name="Client",
            is_active=True,
        )
        db.add_all([admin, client])
        db.commit()
        db.refresh(client)

        repo = ContentRepository(db)
        project = repo.create_project(client.id, "Spring Campaign", description="Demo shoot for local testing")
        for title in DEMO_VIDEOS:
            slug = title.lower().replace(" ", "-")
            repo.create_content_item(
                project.id,
                title=title,
                content_type="video",
                filename=f"{slug}.mp4",
                file_url=f"https://cdn.example.com/demo/{slug}.mp4",
                duration=60,
                aspect_ratio="16:9",
            )
        for title in DEMO_HEADSHOTS:
            slug = title.lower().replace(" ", "-")
            repo.create_content_item(
                project.id,
                title=title,
                content_type="headshot",
                filename=f"{slug}.jpg",
                file_url=f"https://cdn.example.com/demo/{slug}.jpg",
                width=2400,
                height=3000,
            )

        print("✓ Database seeded successfully!")
        print("  Admin:  admin@example.com / adminpassword123")
        print("  Client: client@example.com / clientpassword123")
        print(f"  Project: {project.id} ({len(DEMO_VIDEOS)} videos, {len(DEMO_HEADSHOTS)} headshots)")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
