import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./forum.db")
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
TOKEN_URL = os.getenv("TOKEN_URL", "/auth/login")  # login endpoint of the account service

# Empty -> in-process counters (single worker / tests)
REDIS_URL = os.getenv("REDIS_URL", "")

# Topic creation throttling; 0 disables the corresponding check
TOPIC_CREATE_LIMIT_INTERVAL = int(os.getenv("TOPIC_CREATE_LIMIT_INTERVAL", "0"))
TOPIC_CREATE_HOUR_LIMIT_COUNT = int(os.getenv("TOPIC_CREATE_HOUR_LIMIT_COUNT", "0"))

BAN_WORDS_IN_BODY = [
    w.strip()
    for w in os.getenv("BAN_WORDS_IN_BODY", "").split(",")
    if w.strip()
]

# Replies only bump last_active_mark on topics younger than this
TOPIC_ACTIVE_MARK_FRESH_DAYS = int(os.getenv("TOPIC_ACTIVE_MARK_FRESH_DAYS", "30"))

FORUM_TOPIC_CREATE_RATE = os.getenv("FORUM_TOPIC_CREATE_RATE", "3/minute;20/hour;60/day")
FORUM_REPLY_CREATE_RATE = os.getenv("FORUM_REPLY_CREATE_RATE", "6/minute;40/hour;150/day")
