"""Constants used across orc.

Internal names shared by the planner, executor and enricher. Values that users
may reasonably want to change live in `orc.config.schema` instead.
"""

# Placeholder window tmux requires when a session is created. The first
# CreateWindow of a plan removes it.
SEED_WINDOW_NAME = "orc-seed"

# Member windows: editor | agent / shell
MEMBER_PANE_COUNT = 3

# tmux user options (pane scope)
PANE_ROLE_OPTION = "@pane_role"
PANE_BENCH_OPTION = "@bench_id"
PANE_WORKSHOP_OPTION = "@workshop_id"

# tmux user options (window scope)
ENRICHED_OPTION = "@orc_enriched"
# "1" while CreateWindow is still assembling the window
BUILDING_OPTION = "@orc_building"

# tmux built-in options managed by reconciliation
REMAIN_ON_EXIT_OPTION = "remain-on-exit"
MAIN_PANE_WIDTH_OPTION = "main-pane-width"

# Session environment
WORKSHOP_ENV_VAR = "ORC_WORKSHOP_ID"

# Config / env
CONFIG_PATH_ENV = "ORC_CONFIG_PATH"
ENV_PATH_ENV = "ORC_ENV_PATH"
DB_PATH_ENV = "ORC_DB_PATH"
ACTOR_ENV = "ORC_ACTOR"
DEFAULT_CONFIG_PATH = "~/.orc/config.yml"
