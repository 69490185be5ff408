#!/usr/bin/env python3
"""
Seed database with demo data.

Usage: python scripts/seed.py [--force]
Requires: migrations applied (alembic upgrade head)
"""
import os
import sys

# Ensure shopfund is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import bcrypt
from shopfund.utils.db import get_db_connection

DEMO_PASSWORD = "Demo#12345"
DEMO_USERS = [
    ("rootadmin", "root@example.com", "ROOT"),
    ("bakeryowner", "owner@example.com", "BUSINESS_REPRESENTATIVE"),
    ("kindsupporter", "supporter@example.com", "SUPPORTER"),
]


def _hash(pw: str) -> str:
    return bcrypt.hashpw(pw.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def seed():
    with get_db_connection() as conn, conn.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM users WHERE email = 'owner@example.com'")
        if cur.fetchone()[0] > 0:
            print("Already seeded (owner@example.com exists). Use --force to re-seed.")
            return

        pw_hash = _hash(DEMO_PASSWORD)
        ids = {}
        for username, email, role in DEMO_USERS:
            cur.execute(
                """
                INSERT INTO users (username, email, password_hash, role)
                VALUES (%s, %s, %s, %s)
                RETURNING id
                """,
                (username, email, pw_hash, role),
            )
            ids[role] = cur.fetchone()[0]

        cur.execute(
            """
            INSERT INTO shops (owner_user_id, name, description, address, category, latitude, longitude, status)
            VALUES (%s, 'Corner Bakery', 'Family bakery since 1982', '12 Main St', 'Food', 43.6532, -79.3832,
                    'verified')
            RETURNING id
            """,
            (ids["BUSINESS_REPRESENTATIVE"],),
        )
        shop_id = cur.fetchone()[0]

        cur.execute(
            """
            INSERT INTO campaigns (shop_id, name, description, story, goal, end_date, status, image_url)
            VALUES
                (%s, 'New Oven Fund', 'Help us replace our 30-year-old oven',
                 'Our oven finally gave out last winter.', 5000, CURRENT_DATE + 60, 'approved',
                 'https://example.com/oven.jpg'),
                (%s, 'Patio Seating', 'Outdoor tables for summer', NULL, 2000, CURRENT_DATE + 90,
                 'draft', NULL)
            RETURNING id, status
            """,
            (shop_id, shop_id),
        )
        campaigns = cur.fetchall()
        live_id = next(c[0] for c in campaigns if c[1] == "approved")

        cur.execute(
            """
            INSERT INTO reward_tiers (campaign_id, amount, title, description, quantity_available)
            VALUES
                (%s, 10, 'Free Coffee', 'One coffee on us', NULL),
                (%s, 25, 'Pastry Box', 'Half a dozen pastries', 100),
                (%s, 50, 'Baking Class', 'A Saturday morning class', 10)
            """,
            (live_id, live_id, live_id),
        )

        conn.commit()
        print("Seeded successfully.")
        for username, email, role in DEMO_USERS:
            print(f"  {role:24} {username} / {email} / {DEMO_PASSWORD}")
        print("  Shop: Corner Bakery (verified)")
        print("  Campaigns: 2 (approved with 3 reward tiers, draft)")


def force_seed():
    """Clear demo data and re-seed. Use with caution."""
    with get_db_connection() as conn, conn.cursor() as cur:
        # shops, campaigns, tiers, donations and rewards cascade from users
        cur.execute(
            "DELETE FROM users WHERE email IN %s",
            (tuple(email for _, email, _ in DEMO_USERS),),
        )
        conn.commit()
    print("Cleared demo data. Seeding...")
    seed()


if __name__ == "__main__":
    if "--force" in sys.argv:
        force_seed()
    else:
        seed()
