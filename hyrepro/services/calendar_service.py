"""
Google Calendar Service
Creates Google Meet interviews and syncs attendee RSVPs back to the database
"""
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from sqlalchemy.orm import Session

from hyrepro.core.config import settings
from hyrepro.core.errors import ConfigurationError
from hyrepro.models.interview import (
    AttendeeResponse, InterviewAttendee, InterviewSchedule, ScheduleStatus
)

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/calendar",
]


@dataclass
class Panelist:
    email: str
    name: Optional[str] = None
    role: Optional[str] = None


@dataclass
class MeetingRequest:
    candidate_id: str
    candidate_name: str
    candidate_email: str
    position: str
    start: str
    end: str
    panelists: List[Panelist] = field(default_factory=list)
    summary: Optional[str] = None
    description: Optional[str] = None
    time_zone: str = "UTC"


@dataclass
class SyncError:
    schedule_id: str
    event_id: Optional[str]
    error: str


@dataclass
class SyncReport:
    """Outcome of one sync run; failures are collected, not dropped"""
    synced: int = 0
    updated: int = 0
    failed: int = 0
    errors: List[SyncError] = field(default_factory=list)

    def record_failure(self, schedule_id: str, event_id: Optional[str], error: str):
        self.failed += 1
        self.errors.append(SyncError(schedule_id, event_id, error))

    def to_dict(self) -> dict:
        return {
            "synced": self.synced,
            "updated": self.updated,
            "failed": self.failed,
            "errors": [
                {"scheduleId": e.schedule_id, "eventId": e.event_id, "error": e.error}
                for e in self.errors
            ],
        }


class CalendarService:
    """
    Service for the school's shared Google Calendar

    Attendee sync fetches events concurrently (bounded worker pool, fixed batch
    size) and writes the RSVPs on the calling thread, so the DB session is
    never shared across threads.
    """

    def __init__(
        self,
        service_factory: Optional[Callable[[], object]] = None,
        workers: Optional[int] = None,
        batch_size: Optional[int] = None,
    ):
        self.service_factory = service_factory or self.build_service
        self.workers = max(1, workers or settings.CALENDAR_SYNC_WORKERS)
        self.batch_size = max(1, batch_size or settings.CALENDAR_SYNC_BATCH_SIZE)
        self.calendar_id = settings.GOOGLE_CALENDAR_ID
        self._local = threading.local()

    # ============== CLIENT ==============

    def credentials(self, refresh_token: Optional[str] = None) -> Credentials:
        refresh_token = refresh_token or settings.GOOGLE_REFRESH_TOKEN
        if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET or not refresh_token:
            logger.error("Google Calendar OAuth credentials are not configured")
            raise ConfigurationError("Google Calendar is not configured")
        return Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            scopes=GOOGLE_SCOPES,
        )

    def build_service(self, refresh_token: Optional[str] = None):
        return build("calendar", "v3", credentials=self.credentials(refresh_token), cache_discovery=False)

    def service(self):
        """Per-thread API client; the underlying HTTP transport is not thread-safe"""
        client = getattr(self._local, "client", None)
        if client is None:
            client = self.service_factory()
            self._local.client = client
        return client

    # ============== OAUTH SETUP ==============

    def authorization_url(self, state: Optional[str] = None) -> str:
        if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_REDIRECT_URI:
            raise ConfigurationError("Google OAuth client is not configured")
        params = {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "access_type": "offline",  # get refresh token
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> dict:
        """Trade an authorization code for access + refresh tokens"""
        data = {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
        }
        with httpx.Client(timeout=30.0) as client:
            response = client.post(GOOGLE_TOKEN_URI, data=data)

        token = response.json()
        if response.status_code != 200 or "error" in token:
            raise ValueError(f"Google token error: {token.get('error')} - {token.get('error_description')}")
        return token

    def list_calendars(self, max_results: int = 1) -> list:
        response = self.service().calendarList().list(maxResults=max_results).execute()
        return response.get("items", [])

    # ============== MEETINGS ==============

    def build_event(self, meeting: MeetingRequest) -> dict:
        attendees = [{"email": meeting.candidate_email, "responseStatus": AttendeeResponse.NEEDS_ACTION.value}]
        attendees += [
            {"email": p.email, "responseStatus": AttendeeResponse.NEEDS_ACTION.value}
            for p in meeting.panelists
        ]
        return {
            "summary": meeting.summary or f"Interview with {meeting.candidate_name}",
            "description": meeting.description or f"Interview for {meeting.position} position",
            "start": {"dateTime": meeting.start, "timeZone": meeting.time_zone},
            "end": {"dateTime": meeting.end, "timeZone": meeting.time_zone},
            "attendees": attendees,
            "conferenceData": {
                "createRequest": {
                    "requestId": f"hyrepro-{int(time.time() * 1000)}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                },
            },
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 24 * 60},
                    {"method": "popup", "minutes": 30},
                ],
            },
            "guestsCanModify": False,
            "guestsCanInviteOthers": False,
            "guestsCanSeeOtherGuests": True,
        }

    def create_meeting(self, db: Session, meeting: MeetingRequest) -> dict:
        """Create the calendar event with a Meet link and record the schedule"""
        event = self.service().events().insert(
            calendarId=self.calendar_id,
            conferenceDataVersion=1,
            sendUpdates="all",
            body=self.build_event(meeting),
        ).execute()

        schedule = InterviewSchedule(
            candidate_id=meeting.candidate_id,
            candidate_email=meeting.candidate_email,
            candidate_name=meeting.candidate_name,
            position=meeting.position,
            google_event_id=event["id"],
            google_meet_link=event.get("hangoutLink"),
            google_calendar_link=event.get("htmlLink"),
            start_time=meeting.start,
            end_time=meeting.end,
            status=ScheduleStatus.SCHEDULED.value,
        )
        db.add(schedule)
        db.flush()

        db.add(InterviewAttendee(
            interview_schedule_id=schedule.id,
            email=meeting.candidate_email,
            name=meeting.candidate_name,
            role="candidate",
            response_status=AttendeeResponse.NEEDS_ACTION.value,
        ))
        for panelist in meeting.panelists:
            db.add(InterviewAttendee(
                interview_schedule_id=schedule.id,
                email=panelist.email,
                name=panelist.name,
                role=panelist.role or "panelist",
                response_status=AttendeeResponse.NEEDS_ACTION.value,
            ))
        db.commit()
        db.refresh(schedule)

        logger.info("Scheduled interview %s (event %s)", schedule.id, schedule.google_event_id)
        return {
            "scheduleId": schedule.id,
            "eventId": schedule.google_event_id,
            "meetLink": schedule.google_meet_link,
            "calendarLink": schedule.google_calendar_link,
            "watchChannelId": self.watch_events(),
        }

    def watch_events(self) -> Optional[str]:
        """Register a push channel so RSVP changes hit the webhook"""
        if not settings.CALENDAR_WEBHOOK_URL:
            return None
        channel_id = str(uuid.uuid4())
        try:
            self.service().events().watch(
                calendarId=self.calendar_id,
                body={"id": channel_id, "type": "web_hook", "address": settings.CALENDAR_WEBHOOK_URL},
            ).execute()
        except Exception as e:
            logger.warning("Could not register calendar watch channel: %s", e)
            return None
        return channel_id

    # ============== RSVP SYNC ==============

    def fetch_attendees(self, event_id: str) -> List[dict]:
        event = self.service().events().get(calendarId=self.calendar_id, eventId=event_id).execute()
        return event.get("attendees") or []

    def apply_responses(self, db: Session, schedule_id: str, attendees: List[dict]) -> int:
        """Copy each attendee's RSVP onto interview_attendees; returns rows touched"""
        updated = 0
        for attendee in attendees:
            response_status = attendee.get("responseStatus") or AttendeeResponse.NEEDS_ACTION.value
            rows = db.query(InterviewAttendee).filter(
                InterviewAttendee.interview_schedule_id == schedule_id,
                InterviewAttendee.email == attendee.get("email"),
            ).all()
            for row in rows:
                row.response_status = response_status
                if response_status != AttendeeResponse.NEEDS_ACTION.value:
                    row.responded_at = datetime.utcnow()
                updated += 1
        db.commit()
        return updated

    def sync_schedules(self, db: Session, schedules: List[InterviewSchedule]) -> SyncReport:
        report = SyncReport()
        pending = []
        for schedule in schedules:
            if not schedule.google_event_id:
                report.record_failure(schedule.id, None, "Missing Google event id")
            else:
                pending.append((schedule.id, schedule.google_event_id))

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            for start in range(0, len(pending), self.batch_size):
                batch = pending[start:start + self.batch_size]
                futures = {
                    pool.submit(self.fetch_attendees, event_id): (schedule_id, event_id)
                    for schedule_id, event_id in batch
                }
                for future in as_completed(futures):
                    schedule_id, event_id = futures[future]
                    try:
                        attendees = future.result()
                    except Exception as e:
                        logger.error("Error fetching event %s: %s", event_id, e)
                        report.record_failure(schedule_id, event_id, str(e))
                        continue
                    try:
                        report.updated += self.apply_responses(db, schedule_id, attendees)
                    except Exception as e:
                        db.rollback()
                        logger.error("Error saving responses for %s: %s", schedule_id, e)
                        report.record_failure(schedule_id, event_id, str(e))
                        continue
                    report.synced += 1

        logger.info(
            "Calendar sync: %d synced, %d attendee rows updated, %d failed",
            report.synced, report.updated, report.failed,
        )
        return report

    def sync_schedule(self, db: Session, schedule_id: str) -> SyncReport:
        schedule = db.query(InterviewSchedule).filter(InterviewSchedule.id == schedule_id).first()
        if not schedule:
            raise LookupError(f"Interview schedule {schedule_id} not found")
        return self.sync_schedules(db, [schedule])

    def sync_all(self, db: Session) -> SyncReport:
        schedules = db.query(InterviewSchedule).filter(
            InterviewSchedule.status == ScheduleStatus.SCHEDULED.value
        ).all()
        if not schedules:
            logger.info("No scheduled interviews found")
        return self.sync_schedules(db, schedules)


calendar_service = CalendarService()
