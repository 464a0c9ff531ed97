"""Full-screen alarm delivery: notification first, overlay fallback, durable outcomes."""

from .models import AlarmRequest, OutcomeKind, PendingOutcome, SessionState
from .outcomes import OutcomeStore
from .sequencer import AlarmSequencer
from .service import AlarmService
from .surface import AlarmSurface, SurfaceRegistry
