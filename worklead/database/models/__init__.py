from .company import Company, Department
from .user import User
from .project import Project, ProjectMember, SubProject, SubProjectMember
from .activity import Task, TaskStatus, TimeTracking
from .leaderboard import LeaderboardPeriod, LeaderboardSnapshot, ScopeType
from .achievement import Achievement, AchievementType
from .notification import Notification, NotificationType

__all__ = [
    "Company",
    "Department",
    "User",
    "Project",
    "ProjectMember",
    "SubProject",
    "SubProjectMember",
    "Task",
    "TaskStatus",
    "TimeTracking",
    "LeaderboardPeriod",
    "LeaderboardSnapshot",
    "ScopeType",
    "Achievement",
    "AchievementType",
    "Notification",
    "NotificationType",
]
