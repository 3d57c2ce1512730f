from concurrent.futures import ThreadPoolExecutor

from sqlalchemy.orm import sessionmaker

from app.core.db import Base, make_engine
from app.models.tow_request import RequestSequence
from app.services.sequence import SequenceAllocator, format_request_number


def test_first_number_of_a_year_is_one(db):
    allocator = SequenceAllocator(db)
    assert allocator.allocate(2025) == "TOW-2025-00001"
    assert allocator.allocate(2025) == "TOW-2025-00002"
    db.commit()
    assert allocator.peek(2025) == 2


def test_counters_are_scoped_per_year(db):
    allocator = SequenceAllocator(db)
    allocator.allocate(2024)
    allocator.allocate(2024)
    assert allocator.allocate(2025) == "TOW-2025-00001"
    assert allocator.allocate(2024) == "TOW-2024-00003"


def test_rollback_returns_the_number(db):
    allocator = SequenceAllocator(db)
    allocator.allocate(2025)
    db.commit()
    allocator.allocate(2025)
    db.rollback()
    assert allocator.allocate(2025) == "TOW-2025-00002"


def test_format_pads_to_five_digits():
    assert format_request_number(2025, 7) == "TOW-2025-00007"
    assert format_request_number(2025, 123456) == "TOW-2025-123456"


def test_concurrent_allocation_is_unique_and_contiguous(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'sequence.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    with Session() as s:
        s.add(RequestSequence(year=2025, last_number=41))
        s.commit()

    def allocate_one(_):
        with Session() as s:
            number = SequenceAllocator(s).allocate(2025)
            s.commit()
            return number

    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            numbers = list(pool.map(allocate_one, range(24)))
    finally:
        engine.dispose()

    assert len(set(numbers)) == 24
    assert sorted(numbers) == [f"TOW-2025-{n:05d}" for n in range(42, 66)]
