"""
CalcuSolve Configuration Settings
"""
import os

# Application Settings
APP_NAME = "CalcuSolve"
VERSION = "1.0.0"

# Database Settings
DB_PATH = os.environ.get(
    "CALCUSOLVE_DB_PATH",
    os.path.join(os.path.dirname(__file__), "calcusolve.db"),
)

# History Settings
DEFAULT_HISTORY_LIMIT = int(os.environ.get("CALCUSOLVE_HISTORY_LIMIT", 10))
MAX_HISTORY_LIMIT = 100
HISTORY_LOAD_TIMEOUT = 5  # seconds

# Sessions
SESSION_IDLE_TIMEOUT = int(os.environ.get("CALCUSOLVE_SESSION_IDLE_TIMEOUT", 3600))  # seconds

# Calculator modes
DEFAULT_MODE = "basic"
DEFAULT_CALCULATOR_MODES = [
    # (name, display_name, is_default)
    ("basic", "Basic", True),
    ("scientific", "Scientific", False),
]

DEFAULT_MATH_CONSTANTS = [
    # (name, symbol, value, description)
    ("pi", "π", "3.141592653589793", "Ratio of a circle's circumference to its diameter"),
    ("e", "e", "2.718281828459045", "Euler's number, base of the natural logarithm"),
]

DEFAULT_MATH_FUNCTIONS = [
    # (name, symbol, description, category, error_message)
    ("square_root", "sqrt", "Square root", "scientific",
     "Cannot calculate square root of negative number"),
    ("square", "sqr", "Square", "scientific", "Result is out of range"),
    ("reciprocal", "recip", "Reciprocal", "scientific", "Cannot divide by zero"),
    ("absolute_value", "abs", "Absolute value", "scientific", "Result is out of range"),
    ("log10", "log", "Base-10 logarithm", "scientific", "Invalid input for logarithm"),
    ("natural_log", "ln", "Natural logarithm", "scientific",
     "Invalid input for natural logarithm"),
]

# Logging
LOG_LEVEL = os.environ.get("CALCUSOLVE_LOG_LEVEL", "INFO")

# Web Portal settings
WEB_HOST = os.environ.get("CALCUSOLVE_HOST", "0.0.0.0")
WEB_PORT = int(os.environ.get("CALCUSOLVE_PORT", 8888))
