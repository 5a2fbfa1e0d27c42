"""
Data models for the Channel Sync & Reconciliation engine.
"""
from dataclasses import dataclass, field
from datetime import datetime, date, timezone
from typing import Optional, Dict, Any, List
from enum import Enum


def utc_now() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def _to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Channel(str, Enum):
    """Known channel identities, including synthetic pseudo-channels."""
    AIRBNB = "AIRBNB"
    BOOKING = "BOOKING"
    VRBO = "VRBO"
    WEBSITE = "WEBSITE"
    AGENCY = "AGENCY"
    OTHER = "OTHER"
    ICAL = "ICAL"
    MANUAL = "MANUAL"
    CALENDAR = "CALENDAR"
    PENDING_SYNC = "PENDING_SYNC"


class ConnectionType(str, Enum):
    """Transport used to talk to a channel."""
    ICAL = "ICAL"
    API = "API"


class SyncStatus(str, Enum):
    """Connection status vocabulary surfaced to collaborators."""
    PENDING = "PENDING"
    OK = "OK"
    ERROR = "ERROR"
    OFFLINE = "OFFLINE"
    BLOCKED = "BLOCKED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"


class EventStatus(str, Enum):
    """Lifecycle of a raw feed event."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    TENTATIVE = "tentative"


class EventKind(str, Enum):
    """Real guest booking vs anonymous date closure."""
    BOOKING = "BOOKING"
    BLOCK = "BLOCK"


class BookingStatus(str, Enum):
    """Lifecycle of a canonical booking."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    PENDING = "pending"


class EventState(str, Enum):
    """Whether a canonical booking is firm or still provisional."""
    CONFIRMED = "confirmed"
    PROVISIONAL = "provisional"


class ProvisionalStatus(str, Enum):
    """Lifecycle of an out-of-band reservation signal."""
    PENDING_DETAILS = "PENDING_DETAILS"
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    INQUIRY = "INQUIRY"
    HOLD = "HOLD"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


PENDING_PROVISIONAL_STATUSES = frozenset({
    ProvisionalStatus.PENDING_DETAILS,
    ProvisionalStatus.PENDING_CONFIRMATION,
    ProvisionalStatus.INQUIRY,
    ProvisionalStatus.HOLD,
})


class BookingField(str, Enum):
    """Canonical booking fields tracked by the provenance map."""
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    GUEST_NAME = "guest_name"
    GUESTS = "guests"
    TOTAL_PRICE = "total_price"
    STATUS = "status"
    EVENT_KIND = "event_kind"
    SUMMARY = "summary"
    SOURCE = "source"


class FieldSource(str, Enum):
    """Who last set a canonical booking field."""
    SYSTEM = "SYSTEM"
    MANUAL = "MANUAL"


class CancellationPolicyType(str, Enum):
    """Supported cancellation policy families."""
    FLEXIBLE = "FLEXIBLE"
    MODERATE = "MODERATE"
    STRICT = "STRICT"
    CUSTOM = "CUSTOM"


class SyncInterval(str, Enum):
    """Scheduler cadence in minutes, or manual-only."""
    EVERY_15 = "15"
    EVERY_30 = "30"
    EVERY_60 = "60"
    MANUAL = "manual"

    @property
    def minutes(self) -> Optional[int]:
        return None if self is SyncInterval.MANUAL else int(self.value)


@dataclass
class RentalUnit:
    """A rentable unit (apartment) that owns channel connections."""
    id: str
    name: str = ""
    property_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'property_id': self.property_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RentalUnit':
        return cls(id=data['id'], name=data.get('name') or "", property_id=data.get('property_id'))


@dataclass
class ChannelConnection:
    """One external feed for one rental unit."""
    id: str
    unit_id: str
    channel: str
    feed_url: str
    alias: Optional[str] = None
    enabled: bool = True
    priority: Optional[int] = None
    force_direct: bool = False
    connection_type: ConnectionType = ConnectionType.ICAL
    last_sync: Optional[datetime] = None
    last_status: SyncStatus = SyncStatus.PENDING
    sync_log: Optional[str] = None
    content_hash: Optional[str] = None
    http_etag: Optional[str] = None
    http_last_modified: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.connection_type, str):
            self.connection_type = ConnectionType(self.connection_type.upper())
        if isinstance(self.last_status, str):
            self.last_status = SyncStatus(self.last_status.upper())

    @property
    def display_name(self) -> str:
        return self.alias or self.channel

    def to_dict(self) -> Dict[str, Any]:
        """Convert connection to dictionary for storage."""
        return {
            'id': self.id,
            'unit_id': self.unit_id,
            'channel': self.channel,
            'feed_url': self.feed_url,
            'alias': self.alias,
            'enabled': self.enabled,
            'priority': self.priority,
            'force_direct': self.force_direct,
            'connection_type': self.connection_type.value,
            'last_sync': _iso(self.last_sync),
            'last_status': self.last_status.value,
            'sync_log': self.sync_log,
            'content_hash': self.content_hash,
            'http_etag': self.http_etag,
            'http_last_modified': self.http_last_modified,
            'created_at': _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChannelConnection':
        """Create ChannelConnection from dictionary."""
        data = dict(data)
        data['last_sync'] = _to_datetime(data.get('last_sync'))
        data['created_at'] = _to_datetime(data.get('created_at'))
        data.setdefault('connection_type', ConnectionType.ICAL)
        data['last_status'] = data.get('last_status') or SyncStatus.PENDING
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ParsedEvent:
    """One normalized occurrence as produced by the feed parser."""
    uid: str
    summary: str
    description: str
    start_date: date
    end_date: date
    status: Optional[str] = None
    is_all_day: bool = False
    timezone_hint: Optional[str] = None
    has_recurrence: bool = False
    kind: EventKind = EventKind.BOOKING
    raw: str = ""
    uid_is_fallback: bool = False

    @property
    def is_cancelled(self) -> bool:
        return (self.status or "").lower() == EventStatus.CANCELLED.value


@dataclass
class RawEvent:
    """A persisted feed event, diffed on every pull."""
    id: str
    connection_id: str
    external_uid: str
    unit_id: str
    start_date: date
    end_date: date
    status: EventStatus = EventStatus.CONFIRMED
    summary: str = ""
    description: str = ""
    raw_data: str = ""
    kind: EventKind = EventKind.BOOKING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = EventStatus(self.status.lower())
        if isinstance(self.kind, str):
            self.kind = EventKind(self.kind.upper())

    @property
    def is_active(self) -> bool:
        return self.status != EventStatus.CANCELLED

    def content_equals(self, other: 'RawEvent') -> bool:
        """True when the feed-derived content of both events is identical."""
        return (
            self.start_date == other.start_date
            and self.end_date == other.end_date
            and self.status == other.status
            and self.summary == other.summary
            and self.description == other.description
            and self.raw_data == other.raw_data
            and self.kind == other.kind
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'connection_id': self.connection_id,
            'external_uid': self.external_uid,
            'unit_id': self.unit_id,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'status': self.status.value,
            'summary': self.summary,
            'description': self.description,
            'raw_data': self.raw_data,
            'kind': self.kind.value,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawEvent':
        data = dict(data)
        data['start_date'] = _to_date(data.get('start_date'))
        data['end_date'] = _to_date(data.get('end_date'))
        data['created_at'] = _to_datetime(data.get('created_at'))
        data['updated_at'] = _to_datetime(data.get('updated_at'))
        data['summary'] = data.get('summary') or ""
        data['description'] = data.get('description') or ""
        data['raw_data'] = data.get('raw_data') or ""
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class CanonicalBooking:
    """The authoritative reservation/block record for a unit and date range."""
    id: str
    unit_id: str
    check_in: date
    check_out: date
    status: BookingStatus = BookingStatus.CONFIRMED
    event_state: EventState = EventState.CONFIRMED
    event_kind: EventKind = EventKind.BOOKING
    total_price: float = 0.0
    guests: int = 1
    guest_name: Optional[str] = None
    summary: Optional[str] = None
    source: str = Channel.MANUAL.value
    external_ref: Optional[str] = None
    linked_event_id: Optional[str] = None
    connection_id: Optional[str] = None
    provisional_id: Optional[str] = None
    locator: Optional[str] = None
    conflict_detected: bool = False
    field_sources: Dict[BookingField, FieldSource] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = BookingStatus(self.status.lower())
        if isinstance(self.event_state, str):
            self.event_state = EventState(self.event_state.lower())
        if isinstance(self.event_kind, str):
            self.event_kind = EventKind(self.event_kind.upper())
        self.field_sources = {
            BookingField(k): FieldSource(v) for k, v in (self.field_sources or {}).items()
        }

    @property
    def is_manual_origin(self) -> bool:
        """Operator-entered booking: no feed reference and no provisional origin."""
        return self.external_ref is None and self.provisional_id is None

    def is_manual(self, booking_field: BookingField) -> bool:
        return self.field_sources.get(booking_field) == FieldSource.MANUAL

    def mark_manual(self, booking_field: BookingField):
        self.field_sources[booking_field] = FieldSource.MANUAL

    def clear_manual(self, booking_field: BookingField):
        """Explicit user action releasing a field back to the engine."""
        self.field_sources[booking_field] = FieldSource.SYSTEM

    def to_dict(self) -> Dict[str, Any]:
        """Convert booking to dictionary for storage."""
        return {
            'id': self.id,
            'unit_id': self.unit_id,
            'check_in': _iso(self.check_in),
            'check_out': _iso(self.check_out),
            'status': self.status.value,
            'event_state': self.event_state.value,
            'event_kind': self.event_kind.value,
            'total_price': self.total_price,
            'guests': self.guests,
            'guest_name': self.guest_name,
            'summary': self.summary,
            'source': self.source,
            'external_ref': self.external_ref,
            'linked_event_id': self.linked_event_id,
            'connection_id': self.connection_id,
            'provisional_id': self.provisional_id,
            'locator': self.locator,
            'conflict_detected': self.conflict_detected,
            'field_sources': {k.value: v.value for k, v in self.field_sources.items()},
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CanonicalBooking':
        """Create CanonicalBooking from dictionary."""
        data = dict(data)
        data['check_in'] = _to_date(data.get('check_in'))
        data['check_out'] = _to_date(data.get('check_out'))
        data['created_at'] = _to_datetime(data.get('created_at'))
        data['updated_at'] = _to_datetime(data.get('updated_at'))
        data['total_price'] = float(data.get('total_price') or 0)
        data['conflict_detected'] = bool(data.get('conflict_detected'))
        data['field_sources'] = data.get('field_sources') or {}
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in data.items() if k in known})

    def __str__(self) -> str:
        return (f"Booking(id='{self.id}', unit='{self.unit_id}', "
                f"check_in='{self.check_in}', check_out='{self.check_out}', "
                f"status='{self.status.value}', source='{self.source}')")


@dataclass
class ProvisionalBooking:
    """Reservation signal ingested out-of-band, awaiting linkage or completion."""
    id: str
    provider: str
    check_in: date
    check_out: date
    provider_reservation_id: Optional[str] = None
    status: ProvisionalStatus = ProvisionalStatus.PENDING_DETAILS
    unit_hint: Optional[str] = None
    guest_name: Optional[str] = None
    guests: int = 1
    total_price: float = 0.0
    currency: str = "EUR"
    confidence: float = 0.0
    linked_event_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = ProvisionalStatus(self.status.upper())

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_PROVISIONAL_STATUSES

    @property
    def is_confirmed_like(self) -> bool:
        return self.status == ProvisionalStatus.CONFIRMED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'provider': self.provider,
            'check_in': _iso(self.check_in),
            'check_out': _iso(self.check_out),
            'provider_reservation_id': self.provider_reservation_id,
            'status': self.status.value,
            'unit_hint': self.unit_hint,
            'guest_name': self.guest_name,
            'guests': self.guests,
            'total_price': self.total_price,
            'currency': self.currency,
            'confidence': self.confidence,
            'linked_event_id': self.linked_event_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProvisionalBooking':
        data = dict(data)
        data['check_in'] = _to_date(data.get('check_in'))
        data['check_out'] = _to_date(data.get('check_out'))
        data['created_at'] = _to_datetime(data.get('created_at'))
        data['updated_at'] = _to_datetime(data.get('updated_at'))
        data['total_price'] = float(data.get('total_price') or 0)
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class CancellationRule:
    """Refund percent granted when cancelling at least `days_before` days ahead."""
    days_before: float
    refund_percent: float


@dataclass
class CancellationPolicy:
    """Cancellation policy consumed by the policy evaluator."""
    policy_type: CancellationPolicyType
    rules: List[CancellationRule] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.policy_type, str):
            self.policy_type = CancellationPolicyType(self.policy_type.upper())


@dataclass
class CancellationOutcome:
    """Result of evaluating a cancellation request."""
    refund_percent: float
    refund_amount: float
    fee: float
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'refund_percent': self.refund_percent,
            'refund_amount': self.refund_amount,
            'fee': self.fee,
            'explanation': self.explanation,
        }


@dataclass
class PullResult:
    """Outcome of one adapter pull.

    `unchanged` marks short-circuited results (304, hash match, mock); those never
    carry a full event set, so implicit cancellation must not run after them.
    """
    events: List[ParsedEvent] = field(default_factory=list)
    metadata_updates: Dict[str, Any] = field(default_factory=dict)
    log: str = ""
    unchanged: bool = False


@dataclass
class SyncResult:
    """Result of one unit sync: partial success is normal."""
    processed: int = 0
    conflicts: int = 0
    errors: List[str] = field(default_factory=list)
    unit_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'unit_id': self.unit_id,
            'processed': self.processed,
            'conflicts': self.conflicts,
            'errors': list(self.errors),
        }
