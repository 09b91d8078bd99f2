"""
Shared constants for the flow editor.

Layout spacings are in canvas pixels and match what the chart renders,
so keep them in sync with the chart sizing in graph_viz.
"""

# Horizontal layout: one row, fixed gap between columns
HORIZONTAL_SPACING = 200
HORIZONTAL_ROW_Y = 100

# Vertical layout: one column, fixed gap between rows
VERTICAL_COLUMN_X = 200
VERTICAL_SPACING = 120

# Tree layout: rows of TREE_LEVEL_SIZE nodes, odd rows shifted right
TREE_LEVEL_SIZE = 3
TREE_COLUMN_SPACING = 200
TREE_ROW_SPACING = 120
TREE_ODD_LEVEL_OFFSET = 100

# New nodes spawn somewhere in this rectangle when no position is given
SPAWN_MIN_X = 100.0
SPAWN_WIDTH = 500.0
SPAWN_MIN_Y = 100.0
SPAWN_HEIGHT = 300.0

DEFAULT_CONDITIONAL_LABEL = "If Condition"

# Starting node shown on a fresh canvas
WELCOME_NODE_ID = "1"
WELCOME_NODE_LABEL = "Welcome Node"
WELCOME_NODE_POSITION = (250.0, 100.0)

DEFAULT_SAVE_KEY = "flow-data"
EXPORT_FILENAME_PATTERN = "flow-{date}.json"
