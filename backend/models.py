"""
Data models for the Field Activity Approvals backend
"""

from typing import List, Optional, Union
from pydantic import BaseModel, Field
from enum import Enum


class ActivityStatus(str, Enum):
    """Approval workflow states, in workflow order"""
    NEW = "NEW"
    PENDING = "PENDING"
    CHECKED = "CHECKED"
    APPROVED = "APPROVED"


class GroupMode(str, Enum):
    """Axis used to partition activities into groups"""
    DAY = "day"
    WORKER = "worker"
    PLOT = "plot"
    NONE = "none"


class ActivityRecord(BaseModel):
    """One logged presence of a worker on a plot"""
    id: str
    worker_id: str
    worker_name: str
    plot_id: str
    plot_name: str
    activity_type: str  # e.g. "Harvest", "Spraying", "Irrigation"
    enter_time: Optional[str] = None  # ISO string, None if missing
    exit_time: Optional[str] = None  # ISO string, None if missing exit
    duration: Optional[int] = None  # minutes, None if missing exit
    status: ActivityStatus = ActivityStatus.NEW
    note: Optional[str] = None
    has_missing_exit: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class GroupCounts(BaseModel):
    """Aggregate tally for one group"""
    total: int = 0
    new: int = 0
    pending: int = 0
    checked: int = 0
    approved: int = 0
    missing_exit: int = 0


class ActivityGroup(BaseModel):
    """A named bucket of activities with its counts"""
    key: str
    title: str
    date: Optional[str] = None  # YYYY-MM-DD for day groups
    worker_id: Optional[str] = None
    plot_id: Optional[str] = None
    counts: GroupCounts
    items: List[ActivityRecord]


class ApprovalsView(BaseModel):
    """Grouped approvals page state, already in display order"""
    group_by: GroupMode
    total: int
    groups: List[ActivityGroup]
    selected: List[str]
    expanded: List[str]


class ApproveRequest(BaseModel):
    """Single approval from the details drawer"""
    activity_type: str
    manager_note: str = ""
    approve_partial: bool = False  # required when the exit time is missing


class BulkApproveRequest(BaseModel):
    """Bulk approval of the current selection under the current filters"""
    ids: List[str] = Field(default_factory=list)
    activity_type: str = ""
    q: str = ""
    status: str = "ALL"
    day: Optional[str] = None


class BulkApproveResult(BaseModel):
    updated: int
    ids: List[str]
    activity_type: str
    selected: List[str]


class RealDataRow(BaseModel):
    """Raw row returned by the worker/plot segments RPC"""
    date: Optional[str] = None
    plot: Optional[str] = None
    worker: Optional[str] = None
    duration: Optional[Union[str, int, float]] = None
    enter_plot: Optional[str] = None
    exit_plot: Optional[str] = None


class RealDataEntry(BaseModel):
    """Real data row adapted for display"""
    key: str
    date: str
    plot: Optional[str] = None
    worker: Optional[str] = None
    duration_minutes: Optional[int] = None
    duration: str
    enter_time: str
    exit_time: str


class RealDataResponse(BaseModel):
    total: int
    rows: List[RealDataEntry]
    error: Optional[str] = None
    config_missing: bool = False


class EnvCheck(BaseModel):
    supabase_url_set: bool
    supabase_key_set: bool
