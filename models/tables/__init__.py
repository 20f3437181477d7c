# Import all table models here
from models.tables.report import Report, ReportStatus
from models.tables.admin_action import ActionType, AdminAction
from models.tables.user_timeout import UserTimeout
