from datetime import datetime

from src.shared.waitlist.database import WaitlistEntry, WaitlistStore
from src.shared.waitlist.rate_limit_utils import check_rate_limit

DAY_START = datetime(2026, 3, 14, 0, 0, 0)
DAY_END = datetime(2026, 3, 14, 23, 59, 59, 999000)


def entry_values(email, ip_address="1.2.3.4", at=datetime(2026, 3, 14, 9, 0, 0), **overrides):
    values = {
        "email": email,
        "use_case": None,
        "ip_address": ip_address,
        "user_agent": None,
        "accept_language": None,
        "created_at": at,
        "updated_at": at,
    }
    values.update(overrides)
    return values


def test_upsert_inserts_then_merges(db_session):
    store = WaitlistStore(db_session)
    store.upsert_entry(entry_values("ada@example.com", use_case="first", cf_country="GB"))
    later = datetime(2026, 3, 15, 8, 0, 0)
    store.upsert_entry(entry_values("ada@example.com", ip_address="5.5.5.5", at=later, use_case="second"))

    db_session.expire_all()
    entries = db_session.query(WaitlistEntry).all()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.created_at == datetime(2026, 3, 14, 9, 0, 0)
    assert entry.updated_at == later
    assert entry.use_case == "second"
    assert entry.ip_address == "5.5.5.5"
    # Omitted snapshot columns are overwritten with NULL
    assert entry.cf_country is None


def test_count_window_is_inclusive(db_session):
    store = WaitlistStore(db_session)
    store.upsert_entry(entry_values("start@example.com", at=DAY_START))
    store.upsert_entry(entry_values("end@example.com", at=DAY_END))
    store.upsert_entry(entry_values("before@example.com", at=datetime(2026, 3, 13, 23, 59, 59, 999000)))
    store.upsert_entry(entry_values("after@example.com", at=datetime(2026, 3, 15, 0, 0, 0)))

    assert store.count_submissions("1.2.3.4", DAY_START, DAY_END) == 2


def test_count_is_per_ip(db_session):
    store = WaitlistStore(db_session)
    store.upsert_entry(entry_values("a@example.com", ip_address="1.1.1.1"))
    store.upsert_entry(entry_values("b@example.com", ip_address="2.2.2.2"))

    assert store.count_submissions("1.1.1.1", DAY_START, DAY_END) == 1
    assert store.count_submissions("3.3.3.3", DAY_START, DAY_END) == 0


def test_check_rate_limit(db_session):
    store = WaitlistStore(db_session)
    now = datetime(2026, 3, 14, 12, 0, 0)
    for i in range(3):
        store.upsert_entry(entry_values(f"user{i}@example.com"))

    assert check_rate_limit(store, "1.2.3.4", now, limit=4) is True
    assert check_rate_limit(store, "1.2.3.4", now, limit=3) is False
    assert check_rate_limit(store, "1.2.3.4", datetime(2026, 3, 15, 0, 0, 0), limit=3) is True
