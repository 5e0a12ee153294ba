import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Table,
    Integer,
    Float,
    JSON,
    UniqueConstraint,
    Text,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base
from ..services.derived import (
    ACTIVE_APPOINTMENT_STATUSES,
    appointment_duration_minutes,
    days_until,
    is_overdue,
)


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


def user_fk(nullable: bool = True, index: bool = False) -> Mapped[Optional[uuid.UUID]]:
    return mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL" if nullable else "CASCADE"),
        nullable=nullable,
        index=index,
    )


# Reports attached to a callout (a report may be attached to more than one)
callout_report_links = Table(
    "callout_report_links",
    Base.metadata,
    Column("callout_id", Uuid(as_uuid=True), ForeignKey("callouts.id", ondelete="CASCADE"), primary_key=True),
    Column("report_id", Uuid(as_uuid=True), ForeignKey("callout_reports.id", ondelete="CASCADE"), primary_key=True),
    UniqueConstraint("callout_id", "report_id", name="uq_callout_report"),
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)  # stored lowercase
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="member", nullable=False)  # admin|officer|member
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    push_tokens: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# =====================
# Assets and maintenance
# =====================

class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # asset|workorder|maintenance
    color: Mapped[str] = mapped_column(String(20), default="#3B82F6")
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class Asset(Base):
    __tablename__ = "assets"

    id: Mapped[uuid.UUID] = uuid_pk()
    asset_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    rfid: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # vehicle_ground|vehicle_air|...|other
    type: Mapped[Optional[str]] = mapped_column(String(100))
    manufacturer: Mapped[Optional[str]] = mapped_column(String(255))
    model: Mapped[Optional[str]] = mapped_column(String(255))
    serial_number: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    purchase_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    purchase_cost: Mapped[Optional[float]] = mapped_column(Float)
    current_location: Mapped[Optional[str]] = mapped_column(String(255))
    assigned_unit: Mapped[Optional[str]] = mapped_column(String(255))
    assigned_team: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="operational", index=True)  # operational|maintenance|repair|retired|lost
    specifications: Mapped[Optional[dict]] = mapped_column(JSON, default=dict)
    images: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # upload descriptors
    documents: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # upload descriptors
    certifications: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    expiry_items: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{text, author_id, author_name, created_at}]
    last_maintenance_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    next_maintenance_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    total_hours: Mapped[Optional[float]] = mapped_column(Float, default=0)
    total_miles: Mapped[Optional[float]] = mapped_column(Float, default=0)
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_by = relationship("User", foreign_keys=[created_by_id])

    __table_args__ = (
        Index("idx_asset_status_category", "status", "category"),
    )


class WorkOrder(Base):
    __tablename__ = "work_orders"

    id: Mapped[uuid.UUID] = uuid_pk()
    work_order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    asset_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="medium", index=True)  # low|medium|high|critical
    status: Mapped[str] = mapped_column(String(20), default="open", index=True)  # open|assigned|in_progress|on_hold|completed|cancelled
    category: Mapped[str] = mapped_column(String(100), default="repair")
    requested_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    assigned_to_id: Mapped[Optional[uuid.UUID]] = user_fk(index=True)
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    started_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    estimated_cost: Mapped[Optional[float]] = mapped_column(Float)
    actual_cost: Mapped[Optional[float]] = mapped_column(Float)
    tags: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    completed_notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    asset = relationship("Asset")
    requested_by = relationship("User", foreign_keys=[requested_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])


class MaintenanceRecord(Base):
    __tablename__ = "maintenance_records"

    id: Mapped[uuid.UUID] = uuid_pk()
    asset_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # preventive|corrective|inspection|calibration|certification
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), default="scheduled", index=True)  # scheduled|in_progress|completed|overdue|cancelled
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    performed_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    work_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("work_orders.id", ondelete="SET NULL"))
    checklist_template_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("checklist_templates.id", ondelete="SET NULL"))
    checklist: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{item, completed, notes}]
    parts_used: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{name, part_number, quantity, unit_cost, total_cost}]
    labor_hours: Mapped[Optional[float]] = mapped_column(Float)
    labor_cost: Mapped[Optional[float]] = mapped_column(Float)
    total_cost: Mapped[Optional[float]] = mapped_column(Float, default=0)
    vendor: Mapped[Optional[str]] = mapped_column(String(255))
    invoice_number: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    next_maintenance_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    asset = relationship("Asset")
    performed_by = relationship("User", foreign_keys=[performed_by_id])
    created_by = relationship("User", foreign_keys=[created_by_id])

    @property
    def is_overdue(self) -> bool:
        return is_overdue(self.status, self.due_date)


class MaintenanceQuote(Base):
    __tablename__ = "maintenance_quotes"

    id: Mapped[uuid.UUID] = uuid_pk()
    asset_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    maintenance_record_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("maintenance_records.id", ondelete="SET NULL"))
    work_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("work_orders.id", ondelete="SET NULL"))
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_contact: Mapped[Optional[dict]] = mapped_column(JSON, default=dict)  # {name, email, phone}
    quote_number: Mapped[Optional[str]] = mapped_column(String(100))
    quote_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    labor_cost: Mapped[Optional[float]] = mapped_column(Float, default=0)
    parts_cost: Mapped[Optional[float]] = mapped_column(Float, default=0)
    materials_cost: Mapped[Optional[float]] = mapped_column(Float, default=0)
    total_cost: Mapped[float] = mapped_column(Float, nullable=False)
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float)
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)  # pending|approved|rejected|accepted|expired
    notes: Mapped[Optional[str]] = mapped_column(Text)
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    requested_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    approved_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    approved_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    asset = relationship("Asset")
    requested_by = relationship("User", foreign_keys=[requested_by_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])


# =====================
# Templates and checklists
# =====================

class ChecklistTemplate(Base):
    __tablename__ = "checklist_templates"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)  # callout|maintenance|vehicle_inspection|general
    category: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    items: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{title, description, category, required, order}]
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_by = relationship("User", foreign_keys=[created_by_id])


class CompletedChecklist(Base):
    __tablename__ = "completed_checklists"

    id: Mapped[uuid.UUID] = uuid_pk()
    template_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("checklist_templates.id", ondelete="SET NULL"), index=True)
    template_name: Mapped[str] = mapped_column(String(255), nullable=False)
    template_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    template_category: Mapped[Optional[str]] = mapped_column(String(100))
    items: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{item, description, category, required, completed, notes, order}]
    completed_by: Mapped[str] = mapped_column(String(255), nullable=False)  # name as written on the checklist
    completed_by_user_id: Mapped[Optional[uuid.UUID]] = user_fk(index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    related_asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("assets.id", ondelete="SET NULL"))
    related_work_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("work_orders.id", ondelete="SET NULL"))
    related_maintenance_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("maintenance_records.id", ondelete="SET NULL"))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    total_items: Mapped[int] = mapped_column(Integer, default=0)
    completed_items: Mapped[int] = mapped_column(Integer, default=0)
    required_items: Mapped[int] = mapped_column(Integer, default=0)
    completed_required_items: Mapped[int] = mapped_column(Integer, default=0)
    completion_percentage: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="partial", index=True)  # completed|partial
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    completed_by_user = relationship("User", foreign_keys=[completed_by_user_id])


class MaintenanceTemplate(Base):
    __tablename__ = "maintenance_templates"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # preventive|corrective|inspection|calibration|certification
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    frequency: Mapped[Optional[dict]] = mapped_column(JSON)  # {type: hours|days|weeks|months|years|miles|cycles, interval}
    estimated_duration: Mapped[Optional[float]] = mapped_column(Float)  # hours
    estimated_cost: Mapped[Optional[float]] = mapped_column(Float)
    instructions: Mapped[Optional[str]] = mapped_column(Text)
    required_skills: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    required_parts: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{name, part_number, quantity, estimated_cost}]
    safety_notes: Mapped[Optional[str]] = mapped_column(Text)
    checklist_template_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("checklist_templates.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class WorkOrderTemplate(Base):
    __tablename__ = "work_order_templates"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    estimated_duration: Mapped[Optional[float]] = mapped_column(Float)
    estimated_cost: Mapped[Optional[float]] = mapped_column(Float)
    instructions: Mapped[Optional[str]] = mapped_column(Text)
    required_skills: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    required_parts: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    safety_notes: Mapped[Optional[str]] = mapped_column(Text)
    checklist_template_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("checklist_templates.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


# =====================
# Calendar
# =====================

class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = uuid_pk()
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000))
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    all_day: Mapped[bool] = mapped_column(Boolean, default=False)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(20), default="meeting", index=True)  # meeting|training|inspection|maintenance|event|other
    priority: Mapped[str] = mapped_column(String(20), default="medium")  # low|medium|high|urgent
    status: Mapped[str] = mapped_column(String(20), default="scheduled", index=True)  # scheduled|confirmed|in_progress|completed|cancelled
    attendees: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{user_id, status: invited|accepted|declined|tentative}]
    reminders: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{type, minutes_before}]
    related_asset_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("assets.id", ondelete="SET NULL"))
    related_work_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("work_orders.id", ondelete="SET NULL"))
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recurring_pattern: Mapped[Optional[dict]] = mapped_column(JSON)  # {frequency, interval, end_type, end_date, end_count, days_of_week}
    tags: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by_id: Mapped[uuid.UUID] = user_fk(index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_by = relationship("User", foreign_keys=[created_by_id])

    @property
    def duration_minutes(self) -> int:
        return appointment_duration_minutes(self.start_date, self.end_date)

    @property
    def is_overdue(self) -> bool:
        return is_overdue(self.status, self.end_date, active_statuses=ACTIVE_APPOINTMENT_STATUSES)


# =====================
# Callouts
# =====================

class Callout(Base):
    __tablename__ = "callouts"

    id: Mapped[uuid.UUID] = uuid_pk()
    callout_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), default="search", index=True)  # search|rescue|recovery|assist|training|other
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)  # active|completed|cancelled
    location: Mapped[Optional[dict]] = mapped_column(JSON)  # {address, coordinates: {lat, lng}, description}
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    contact_person: Mapped[Optional[dict]] = mapped_column(JSON)  # {name, phone, email}
    responding_members: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{user_id, check_in_time, check_out_time, role, notes}]
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_by = relationship("User", foreign_keys=[created_by_id])
    reports = relationship("CalloutReport", secondary=callout_report_links, order_by="CalloutReport.created_at")


class CalloutReport(Base):
    __tablename__ = "callout_reports"

    id: Mapped[uuid.UUID] = uuid_pk()
    report_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    callout_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("callouts.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    report_type: Mapped[str] = mapped_column(String(20), default="incident")  # incident|after_action|safety|equipment|personnel|other
    status: Mapped[str] = mapped_column(String(20), default="draft", index=True)  # draft|submitted|reviewed|approved|archived
    content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    actions_taken: Mapped[Optional[str]] = mapped_column(Text)
    outcome: Mapped[Optional[str]] = mapped_column(Text)
    lessons_learned: Mapped[Optional[str]] = mapped_column(Text)
    recommendations: Mapped[Optional[str]] = mapped_column(Text)
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    written_by_id: Mapped[Optional[uuid.UUID]] = user_fk(index=True)
    reviewed_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approved_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_modified_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    modification_history: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{modified_by, modified_at, changes}]
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    callout = relationship("Callout", foreign_keys=[callout_id])
    written_by = relationship("User", foreign_keys=[written_by_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])


# =====================
# Training
# =====================

class Certificate(Base):
    __tablename__ = "certificates"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = user_fk(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    certificate_number: Mapped[Optional[str]] = mapped_column(String(100))
    issuing_authority: Mapped[Optional[str]] = mapped_column(String(255))
    issued_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    file: Mapped[Optional[dict]] = mapped_column(JSON)  # upload descriptor
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)  # active|expiring_soon|expired
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    user = relationship("User", foreign_keys=[user_id])
    created_by = relationship("User", foreign_keys=[created_by_id])

    @property
    def days_until_expiry(self) -> Optional[int]:
        return days_until(self.expiry_date)


class TrainingRecord(Base):
    __tablename__ = "training_records"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = user_fk(nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    training_type: Mapped[str] = mapped_column(String(20), default="training")  # certification|training|orientation|refresher|specialized|other
    category: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default="completed", index=True)  # completed|in_progress|scheduled|cancelled|pending_approval|approved|rejected
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    hours: Mapped[Optional[float]] = mapped_column(Float)
    instructor: Mapped[Optional[str]] = mapped_column(String(255))
    location: Mapped[Optional[str]] = mapped_column(String(255))
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    approved_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    approved_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    approval_notes: Mapped[Optional[str]] = mapped_column(Text)
    certificate_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("certificates.id", ondelete="SET NULL"))
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    assigned_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    assigned_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    user = relationship("User", foreign_keys=[user_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    assigned_by = relationship("User", foreign_keys=[assigned_by_id])
    certificate = relationship("Certificate")


# =====================
# Notifications and chat
# =====================

class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = uuid_pk()
    user_id: Mapped[uuid.UUID] = user_fk(nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(40), default="general", index=True)  # maintenance_due|...|general
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    related_entity_type: Mapped[Optional[str]] = mapped_column(String(50))
    related_entity_id: Mapped[Optional[str]] = mapped_column(String(64))
    action_url: Mapped[Optional[str]] = mapped_column(String(500))
    priority: Mapped[str] = mapped_column(String(20), default="medium")  # low|medium|high|critical
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    data: Mapped[Optional[dict]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "read"),
    )


class ChatGroup(Base):
    __tablename__ = "chat_groups"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # main|parade|training|callout|custom
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_by_id: Mapped[Optional[uuid.UUID]] = user_fk()
    members: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # user ids as strings
    last_cleared: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    auto_clear_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[uuid.UUID] = uuid_pk()
    sender_id: Mapped[Optional[uuid.UUID]] = user_fk(index=True)  # null for external messages
    recipient_id: Mapped[Optional[uuid.UUID]] = user_fk(index=True)
    group_type: Mapped[Optional[str]] = mapped_column(String(20), index=True)  # main|parade|training|callout|custom
    group_name: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    is_broadcast: Mapped[bool] = mapped_column(Boolean, default=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    read_by: Mapped[Optional[list]] = mapped_column(JSON, default=list)  # [{user_id, read_at}]
    is_external: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    external_source: Mapped[Optional[str]] = mapped_column(String(20))  # adlc|dispatch|fire|ems|police
    external_sender_name: Mapped[Optional[str]] = mapped_column(String(255))
    external_sender_id: Mapped[Optional[str]] = mapped_column(String(255))
    external_metadata: Mapped[Optional[dict]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, index=True)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    __table_args__ = (
        Index("idx_chat_group", "group_type", "group_name", "created_at"),
        Index("idx_chat_direct", "sender_id", "recipient_id", "created_at"),
    )
