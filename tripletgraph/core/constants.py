"""Constants for graph layout and presentation."""

# Canvas
LAYOUT_WIDTH = 600
LAYOUT_HEIGHT = 400

# Solver
LINK_LENGTH = 50
WARMUP_ITERATIONS = (10, 15, 20)  # coarse, medium, fine
NODE_RADIUS = 12.0
REPULSION_STRENGTH = 400.0
SPRING_STRENGTH = 0.1
CENTERING_STRENGTH = 0.02
VELOCITY_DECAY = 0.6
INITIAL_SPREAD = 30.0
# Node fields written by the layout solver
LAYOUT_FIELDS = ("x", "y", "vx", "vy", "index")

# Edges
DEFAULT_LINK_COLOR = "black"

# Arrowhead markers
MARKER_VIEW_BOX = "0 -5 10 10"
MARKER_REF_X = 16
MARKER_REF_Y = -1.5
MARKER_SIZE = 6
MARKER_PATH = "M0,-5L10,0L0,5"

# Color policy for predicate types that arrive without a color
DEFAULT_PALETTE = (
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
)

# Triplet fields, in storage order
TRIPLET_FIELDS = ("subject", "predicate", "object")
