from enum import Enum


class UserRole(str, Enum):
    admin = "admin"
    staff = "staff"
    citizen = "citizen"


class Department(str, Enum):
    public_works = "public_works"
    sanitation = "sanitation"
    electrical = "electrical"
    water = "water"
    traffic = "traffic"
    general = "general"


class ReportCategory(str, Enum):
    pothole = "Pothole"
    waste = "Waste"
    light = "Light"
    water = "Water"
    traffic = "Traffic"
    other = "Other"


class ReportStatus(str, Enum):
    submitted = "Submitted"
    assigned = "Assigned"
    in_progress = "In Progress"
    resolved = "Resolved"
    closed = "Closed"
    rejected = "Rejected"


STAFF_ROLES = {UserRole.staff.value, UserRole.admin.value}
