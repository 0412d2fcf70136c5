from app.models.profile import Profile
from app.models.player import Player
from app.models.team import Team, TeamMember
from app.models.match import Match, GoalScorer
from app.models.audit_log import AuditLog
