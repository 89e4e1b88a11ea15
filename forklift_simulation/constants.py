# ============================================================
# GRID
# ============================================================
GRID_WIDTH  = 42        # columns (x: 0-41, left to right)
GRID_HEIGHT = 30        # rows    (y: 0-29, top to bottom)

AISLE_MODULUS      = 7  # every 7th interior column is a main aisle
INNER_AISLE_OFFSET = 3  # (x - 3) % 7 == 3 is the aisle inside a shelf block
MAIN_AISLE_ROW     = 6  # horizontal aisle under the receiving/shipping blocks

GRID_SESSION_KEY = "warehouse_grid"

# ============================================================
# PATHFINDING  (extra edge cost on top of the unit step)
# ============================================================
OCCUPIED_PENALTY = 1000  # another forklift stands on the cell
NEARBY_PENALTY   = 10    # another forklift within Chebyshev distance 1
PLANNED_PENALTY  = 50    # another forklift's next planned step
DETOUR_OFFSET    = 2     # midpoint offset tried by the detour strategy

# ============================================================
# SCHEDULER
# ============================================================
MIN_TICK_INTERVAL_MS = 200
BASE_TICK_INTERVAL_MS = 1000
SIM_SECONDS_PER_TICK = 0.5

STUCK_THRESHOLD_MS   = 15000  # no movement for this long while routed -> stuck
BLOCKED_BACKDATE_MS  = 5000   # lastMoveTime push-back when a move is refused
ALERT_MAX_AGE_MS     = 30000  # unresolved alerts older than this auto-resolve
LOW_FUEL_THRESHOLD   = 15.0

EXPLORATION_DECAY_EVERY = 10  # ticks
EXPLORATION_DECAY       = 0.995
EXPLORATION_FLOOR       = 0.01

# (fuel, battery) consumed per step
STEP_COST         = (0.1, 0.08)
PICKUP_STEP_COST  = (0.15, 0.1)
DROPOFF_STEP_COST = (0.15, 0.1)
MANUAL_STEP_COST  = (0.2, 0.15)

REQUIRED_CAPACITY_MARGIN = 1.1

# ============================================================
# Q-LEARNING REWARDS
# ============================================================
REWARD_TASK_COMPLETED = 100.0
REWARD_CLOSER         = 10.0
REWARD_FARTHER        = -5.0
REWARD_TIME           = -1.0

# ============================================================
# FLEET PRESETS
# ============================================================
FORKLIFT_START_POSITIONS = [(3, 4), (6, 4), (9, 4), (12, 4), (15, 4)]
OPERATOR_NAMES = [
    "John Smith", "Sarah Johnson", "Mike Davis", "Lisa Wilson", "David Brown",
]
FORKLIFT_CAPACITIES = [1000, 1200, 800, 1500, 1000]  # kg

INITIAL_TASK_COUNT = 12

# name -> (base weight kg, fragile)
MATERIAL_CATALOGUE: dict[str, tuple[float, bool]] = {
    "Steel Pipes":      (200, False),
    "Glass Panels":     (50, True),
    "Electronics":      (30, True),
    "Lumber":           (150, False),
    "Machinery Parts":  (300, False),
    "Chemicals":        (100, True),
    "Textiles":         (25, False),
    "Food Products":    (75, False),
    "Auto Parts":       (120, False),
    "Medical Supplies": (40, True),
}
