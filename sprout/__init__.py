"""Sprout core library: tasks, recurrence, goals and rewards.

Public API re-exports for convenient imports:
    from sprout import Planner, materialize, TaskStore, ...
"""

# Errors
from sprout.errors import (
    SproutError,
    ValidationError,
    NotFoundError,
    InvariantViolation,
    StorageError,
)

# Workspace & paths
from sprout.workspace import (
    workspace_root,
    get_user_timezone,
    today_str,
    now_local,
    tasks_path,
    goals_path,
    wallet_path,
    profile_path,
    hooks_config_path,
)

# Models
from sprout.models import (
    NoRepeat,
    Daily,
    Weekly,
    Monthly,
    Custom,
    Task,
    TasksFile,
    Occurrence,
    Goal,
    GoalsFile,
    RewardNotification,
    Medal,
    Wallet,
)

# Engines
from sprout.materialize import materialize, find_occurrence, visible_range
from sprout.tasks import TaskStore, validate_task, load_tasks, save_tasks
from sprout.goals import GoalLedger, validate_goal, progress_increment, progress_percent
from sprout.rewards import RewardEngine
from sprout.ordering import reorder, sort_occurrences, dependency_links
from sprout.stats import compute_stats
from sprout.planner import Planner
