"""
Seed a local database with a demo tenant and a few scheduled items.

    python seed.py
"""
from datetime import timedelta

from app.database import SessionLocal, engine, Base
from app.models import User, UserSettings, ScheduledQnA, ScheduledPost, Activity
from app.services.batch_submission import BatchSubmissionService
from app.services.timeutil import utcnow

DEMO_USER_ID = "user_demo"

# Create tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

# Clear existing demo data
for model in (ScheduledQnA, ScheduledPost, Activity, UserSettings):
    db.query(model).filter(model.user_id == DEMO_USER_ID).delete()
db.query(User).filter(User.id == DEMO_USER_ID).delete()
db.commit()

db.add(User(id=DEMO_USER_ID, email="demo@example.com", display_name="Demo Bakery"))
db.add(UserSettings(
    user_id=DEMO_USER_ID,
    default_location_id="locations/1234567890",
    default_account_name="accounts/9876543210",
    language_code="en",
    timezone="UTC",
))
db.commit()

service = BatchSubmissionService(db)
tomorrow = utcnow() + timedelta(days=1)

qna = service.submit_qna(
    DEMO_USER_ID,
    [
        {"question": "What time do you open on weekends?", "answer": "We open at 8 AM on Saturdays and Sundays."},
        {"question": "Do you bake gluten-free bread?", "answer": "Yes, every Tuesday and Friday."},
        {"question": "Can I order a birthday cake online?", "answer": None},
    ],
    tomorrow,
)

posts = service.submit_posts(
    DEMO_USER_ID,
    [
        {
            "summary": "Fresh sourdough every morning. Come by before it sells out!",
            "action_type": "ORDER",
            "action_url": "https://example.com/order",
        },
        {
            "summary": "Weekend baking class for kids. Aprons provided.",
            "topic_type": "EVENT",
            "metadata": {
                "title": "Kids Baking Class",
                "schedule": {
                    "start": (tomorrow + timedelta(days=2)).isoformat(),
                    "end": (tomorrow + timedelta(days=2, hours=2)).isoformat(),
                },
            },
            "scheduled_publish_time": (tomorrow + timedelta(hours=4)).isoformat(),
        },
    ],
    tomorrow,
)

db.close()

print("Seeded demo tenant:")
print(f"  - user: {DEMO_USER_ID}")
print(f"  - {len(qna.ids)} scheduled Q&A (batch {qna.batch_id})")
print(f"  - {len(posts.ids)} scheduled posts (batch {posts.batch_id})")
