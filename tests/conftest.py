from datetime import date

import pytest
from fastapi.testclient import TestClient

from clinic_analytics.main import app
from clinic_analytics.services.schedule.models import AppointmentRecord, AppointmentStatus


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def make_appointment(
    day: date,
    time: str = "09:00",
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    chair: str = "chair-1",
    specialty: str = "orthodontics",
) -> AppointmentRecord:
    return AppointmentRecord(date=day, time=time, status=status, chair=chair, specialty=specialty)


@pytest.fixture
def appointment():
    return make_appointment


def appointment_payload(
    day: str,
    time: str = "09:00",
    status: str = "scheduled",
    chair: str = "chair-1",
    specialty: str = "orthodontics",
) -> dict:
    return {"date": day, "time": time, "status": status, "chair": chair, "specialty": specialty}


@pytest.fixture
def appointment_json():
    return appointment_payload
