"""
Demo Data Loader

Seeds the marketplace sample catalog (categories, users, educator profiles,
subjects, testimonials, reviews) and walks one booking through its lifecycle.
Usage: python -m ledger.scripts.load_demo --backend database
"""
import argparse
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from ledger import schemas
from ledger.services.ledger_service import LedgerService, build_ledger_service

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

IMAGE_BASE = "https://images.unsplash.com"

CATEGORIES = [
    ("Mathematics", "Mathematics and Statistics", "photo-1535551951406-a19828b0a76b", 120),
    ("Programming", "Programming and Web Development", "photo-1517694712202-14dd9538aa97", 85),
    ("Languages", "Foreign Languages and Literature", "photo-1522202176988-66273c2fd55f", 150),
    ("Music", "Music Theory and Instruments", "photo-1514119412350-e174d90d280e", 95),
    ("Science", "Physics, Chemistry, and Biology", "photo-1532094349884-543bc11b234d", 110),
    ("Art & Design", "Visual Arts and Design", "photo-1452860606245-08befc0ff44b", 75),
    ("Business", "Business Studies and Economics", "photo-1455849318743-b2233052fcff", 65),
]

USERS = [
    ("sarahjohnson", "Sarah", "Johnson", "PhD in Mathematics with 10+ years of teaching experience",
     "photo-1544717305-2782549b5136", "educator"),
    ("jameswilson", "James", "Wilson", "Senior software developer with expertise in web technologies",
     "photo-1507003211169-0a1dd7228f2d", "educator"),
    ("mariagarcia", "Maria", "Garcia", "Multilingual expert with degrees in Literature and Linguistics",
     "photo-1580894732444-8ecded7900cd", "educator"),
    ("alexthompson", "Alex", "Thompson", "Computer Science student",
     "photo-1557862921-37829c790f19", "student"),
    ("jenniferdavis", "Jennifer", "Davis", "Business professional looking to learn Spanish",
     "photo-1580489944761-15a19d654956", "student"),
    ("sophiawilliams", "Sophia", "Williams", "Parent looking for a piano teacher for my daughter",
     "photo-1508214751196-bcfd4ca60f91", "student"),
]

# username -> profile fields
EDUCATOR_PROFILES = {
    "sarahjohnson": {
        "title": "Mathematics & Statistics Professor",
        "hourly_rate": 45,
        "experience": "10+ years teaching at university level",
        "education": "PhD in Applied Mathematics",
        "specialties": ["Calculus", "Statistics", "Algebra"],
        "availability": {
            "monday": ["9:00", "10:00", "11:00"],
            "wednesday": ["13:00", "14:00", "15:00"],
            "friday": ["9:00", "10:00", "11:00"],
        },
    },
    "jameswilson": {
        "title": "Programming & Web Development Instructor",
        "hourly_rate": 55,
        "experience": "15 years as a software engineer",
        "education": "Master's in Computer Science",
        "specialties": ["JavaScript", "Python", "React"],
        "availability": {
            "tuesday": ["18:00", "19:00", "20:00"],
            "thursday": ["18:00", "19:00", "20:00"],
            "saturday": ["10:00", "11:00", "12:00"],
        },
    },
    "mariagarcia": {
        "title": "Languages & Literature Teacher",
        "hourly_rate": 40,
        "experience": "8 years teaching languages",
        "education": "Master's in Linguistics",
        "specialties": ["Spanish", "French", "English Literature"],
        "availability": {
            "monday": ["16:00", "17:00", "18:00"],
            "wednesday": ["16:00", "17:00", "18:00"],
            "friday": ["16:00", "17:00", "18:00"],
        },
    },
}

# category -> (subjects, description template, educator, subjects the educator teaches)
SUBJECTS = {
    "Mathematics": (
        ["Calculus", "Statistics", "Algebra", "Geometry", "Trigonometry"],
        "Learn {} with expert tutors",
        "sarahjohnson",
        3,
    ),
    "Programming": (
        ["JavaScript", "Python", "Web Development", "Algorithms", "Data Structures"],
        "Master {} with practical projects",
        "jameswilson",
        3,
    ),
    "Languages": (
        ["Spanish", "French", "English Literature", "Grammar", "Conversation"],
        "Become fluent in {}",
        "mariagarcia",
        3,
    ),
}

TESTIMONIALS = [
    ("alexthompson", "Computer Science Student",
     "This marketplace helped me find the perfect math tutor who finally made calculus click for me. "
     "I went from struggling to acing my exams in just two months!"),
    ("jenniferdavis", "Business Professional",
     "I wanted to learn Spanish for an upcoming trip to Madrid. My instructor was amazing and "
     "tailored lessons to my travel needs. Highly recommend!"),
    ("sophiawilliams", "Parent",
     "As a parent, I was looking for a qualified piano teacher for my daughter. We found an excellent "
     "instructor who makes lessons fun and engaging. Her progress has been remarkable!"),
]

REVIEWS = [
    ("sarahjohnson", "alexthompson", 5,
     "Dr. Johnson explained complex calculus concepts in a way that finally made sense to me."),
    ("jameswilson", "alexthompson", 5,
     "James is an excellent programming tutor. I learned React in just a few weeks!"),
    ("mariagarcia", "jenniferdavis", 5,
     "My Spanish improved dramatically after just a month of lessons with Maria."),
]


def actor_for(user: schemas.User) -> schemas.ActingIdentity:
    return schemas.ActingIdentity(user_id=user.id, role=user.role)


async def load_catalog(service: LedgerService) -> dict:
    """Create categories, users, profiles and subjects; return lookups by name"""
    categories = {}
    for name, description, image, educator_count in CATEGORIES:
        category = await service.create_category({
            "name": name,
            "description": description,
            "image_url": f"{IMAGE_BASE}/{image}",
            "educator_count": educator_count,
        })
        categories[name] = category
    print(f"  ✓ Created {len(categories)} categories")

    users = {}
    for username, first_name, last_name, bio, image, role in USERS:
        users[username] = await service.register_user({
            "username": username,
            "email": f"{first_name.lower()}@example.com",
            "first_name": first_name,
            "last_name": last_name,
            "bio": bio,
            "profile_image": f"{IMAGE_BASE}/{image}",
            "role": role,
            "is_verified": True,
        })
    print(f"  ✓ Created {len(users)} users")

    educators = {}
    for username, fields in EDUCATOR_PROFILES.items():
        user = users[username]
        educators[username] = await service.register_educator_profile(
            actor_for(user), {"user_id": user.id, **fields}
        )
    print(f"  ✓ Created {len(educators)} educator profiles")

    subject_count = 0
    for category_name, (names, template, username, taught) in SUBJECTS.items():
        educator = educators[username]
        for position, name in enumerate(names):
            subject = await service.create_subject({
                "category_id": categories[category_name].id,
                "name": name,
                "description": template.format(name),
            })
            subject_count += 1
            if position < taught:
                await service.assign_subject(actor_for(users[username]), educator.id, subject.id)
    print(f"  ✓ Created {subject_count} subjects")

    return {"users": users, "educators": educators}


async def load_feedback(service: LedgerService, users: dict, educators: dict):
    for username, user_role, content in TESTIMONIALS:
        user = users[username]
        await service.submit_testimonial(
            actor_for(user),
            {"user_id": user.id, "content": content, "user_role": user_role},
        )
    print(f"  ✓ Created {len(TESTIMONIALS)} testimonials")

    for educator_name, student_name, rating, comment in REVIEWS:
        student = users[student_name]
        await service.submit_review(actor_for(student), {
            "educator_id": educators[educator_name].id,
            "student_id": student.id,
            "rating": rating,
            "comment": comment,
        })
    print(f"  ✓ Created {len(REVIEWS)} reviews")


async def load_booking(service: LedgerService, users: dict, educators: dict):
    """Book, confirm, complete and pay one session"""
    student = users["alexthompson"]
    educator_user = users["sarahjohnson"]
    educator = educators["sarahjohnson"]

    start_time = schemas.utcnow().replace(hour=9, minute=0, second=0, microsecond=0) - timedelta(days=7)
    session = await service.book_session(actor_for(student), {
        "educator_id": educator.id,
        "student_id": student.id,
        "start_time": start_time,
        "end_time": start_time + timedelta(hours=1),
        "total_price": educator.hourly_rate,
        "notes": "Calculus exam preparation",
    })
    await service.lifecycle.confirm(actor_for(educator_user), session.id)
    await service.lifecycle.complete(actor_for(educator_user), session.id)
    paid = await service.lifecycle.pay(actor_for(student), session.id)
    print(f"  ✓ Session {paid.id} booked, confirmed, completed and {paid.payment_status}")


async def load_demo(backend_name: Optional[str] = None, database_url: Optional[str] = None, with_booking: bool = True):
    print("\nLoading marketplace demo data...")
    service = await build_ledger_service(backend_name, database_url)
    try:
        lookups = await load_catalog(service)
        await load_feedback(service, lookups["users"], lookups["educators"])
        if with_booking:
            await load_booking(service, lookups["users"], lookups["educators"])
    finally:
        await service.close()

    print("\n✅ Demo data loaded successfully!")


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load marketplace demo data")
    parser.add_argument(
        "--backend",
        "-b",
        choices=["memory", "database"],
        default=None,
        help="Storage backend (defaults to LEDGER_BACKEND)"
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (defaults to DATABASE_URL)"
    )
    parser.add_argument(
        "--skip-booking",
        action="store_true",
        help="Do not create the sample booking"
    )

    args = parser.parse_args()
    asyncio.run(load_demo(args.backend, args.database_url, with_booking=not args.skip_booking))


if __name__ == "__main__":
    main()
