"""
Pytest configuration and fixtures
"""
import math
import pytest
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.auth.session import SessionContext
from src.crowdsource.deduplication import GeoLocation
from src.crowdsource.report_handler import ReportDraft
from src.database.connection import DatabaseConnection
from src.database.models import Report, ReportStatus, UserRole, new_doc_id, utcnow
from src.storage.image_store import ImageStore

# O'Connell Bridge, Dublin
DUBLIN_LAT = 53.3498
DUBLIN_LON = -6.2603


class FakeVerifier:
    """Records calls and returns a fixed verdict (or raises)."""

    def __init__(self, verdict=True, error=None):
        self.verdict = verdict
        self.error = error
        self.calls = []

    def verify(self, image_bytes, category):
        self.calls.append((image_bytes, category))
        if self.error is not None:
            raise self.error
        return self.verdict


@pytest.fixture
def database():
    """Fresh in-memory database per test."""
    db = DatabaseConnection(database_url="sqlite://")
    db.create_tables()
    yield db
    db.drop_tables()
    db.close()


@pytest.fixture
def db_session(database):
    session = database.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def image_store(tmp_path):
    return ImageStore(base_dir=str(tmp_path / "images"), base_url="http://test/images")


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def user_ctx():
    return SessionContext(user_id="user-1")


@pytest.fixture
def other_user_ctx():
    return SessionContext(user_id="user-2")


@pytest.fixture
def admin_ctx():
    return SessionContext(user_id="admin-1", role=UserRole.ADMIN)


@pytest.fixture
def other_admin_ctx():
    return SessionContext(user_id="admin-2", role=UserRole.MODERATOR)


@pytest.fixture
def sample_location():
    return GeoLocation(latitude=DUBLIN_LAT, longitude=DUBLIN_LON, accuracy=12.0)


@pytest.fixture
def make_draft(sample_location):
    """Factory for a draft that passes every precondition."""
    def _make(**overrides):
        fields = {
            "image": b"\xff\xd8\xff\xe0fake-jpeg",
            "category": "Pothole",
            "description": "Deep pothole in the left lane",
            "address_line1": "O'Connell Street",
            "address_line2": None,
            "county": "Dublin",
            "eircode": "D01 F5P2",
            "location": sample_location,
        }
        fields.update(overrides)
        return ReportDraft(**fields)
    return _make


@pytest.fixture
def make_report(db_session):
    """Factory that inserts a report row directly."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "doc_id": new_doc_id(),
            "id": f"sub-{counter['n']}",
            "category": "Pothole",
            "description": "Pothole",
            "image_url": f"http://test/images/reports/sub-{counter['n']}.jpg",
            "address_line1": "Main Street",
            "county": "Co. Dublin",
            "eircode": "D01 F5P2",
            "location": {"latitude": DUBLIN_LAT, "longitude": DUBLIN_LON, "accuracy": 10.0},
            "user_id": "user-1",
            "status": ReportStatus.PENDING,
            "assigned": None,
            "upvotes": 0,
            "timestamp": utcnow() + timedelta(seconds=counter["n"]),
        }
        fields.update(overrides)
        report = Report(**fields)
        db_session.add(report)
        db_session.commit()
        return report
    return _make


@pytest.fixture
def offset_point():
    """Point `meters` away from O'Connell Bridge (or `origin`) along `bearing`."""
    def _offset(meters, bearing=90.0, origin=(DUBLIN_LAT, DUBLIN_LON)):
        lat = math.radians(origin[0])
        lon = math.radians(origin[1])
        theta = math.radians(bearing)
        delta = meters / 6_371_000.0

        dest_lat = math.asin(
            math.sin(lat) * math.cos(delta) +
            math.cos(lat) * math.sin(delta) * math.cos(theta)
        )
        dest_lon = lon + math.atan2(
            math.sin(theta) * math.sin(delta) * math.cos(lat),
            math.cos(delta) - math.sin(lat) * math.sin(dest_lat)
        )
        return math.degrees(dest_lat), math.degrees(dest_lon)
    return _offset
