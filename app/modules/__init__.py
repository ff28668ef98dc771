"""Domain modules package."""

from app.modules.booking import models as booking_models  # noqa: F401
from app.modules.events import models as events_models  # noqa: F401
from app.modules.lessons import models as lessons_models  # noqa: F401
from app.modules.teachers import models as teachers_models  # noqa: F401
