"""deployflow: dependency-ordered deployment workflows from reusable templates."""

from .advisor import Advisor, Suggestion
from .analytics import AnalyticsSnapshot, compute_analytics, summarize
from .config import DeployflowConfig, load_config
from .context import AppContext
from .executor import StepExecutor, StepResult
from .models import DeploymentConfig, Execution, Notification, Project, Step, Template
from .orchestrator import Orchestrator
from .persistence import EntityRepository, get_store
from .runners import get_runner
from .notifications import get_sink
from .templates import TemplateEngine

__version__ = "0.1.0"
__all__ = [
    "Advisor",
    "AnalyticsSnapshot",
    "AppContext",
    "DeployflowConfig",
    "DeploymentConfig",
    "EntityRepository",
    "Execution",
    "Notification",
    "Orchestrator",
    "Project",
    "Step",
    "StepExecutor",
    "StepResult",
    "Suggestion",
    "Template",
    "TemplateEngine",
    "compute_analytics",
    "get_runner",
    "get_sink",
    "get_store",
    "load_config",
    "summarize",
]
