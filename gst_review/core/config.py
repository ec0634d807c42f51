
import os
from dotenv import load_dotenv

# Load env vars
load_dotenv()

# --- Configuration Constants ---

# Auth (tokens are issued by the external identity provider)
SECRET_KEY = os.getenv("SECRET_KEY", "your_secret_key_change_me_in_prod")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

# Dashboard Backend (HTTP store)
BACKEND_API_TOKEN = os.getenv("BACKEND_API_TOKEN")
BACKEND_TIMEOUT_SECONDS = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "30"))

# Neo4j
NEO4J_URI = os.getenv("NEO4J_URI", "bolt://localhost:7687")
NEO4J_USER = os.getenv("NEO4J_USER", "neo4j")
NEO4J_PASSWORD = os.getenv("NEO4J_PASSWORD", "password")

# Which store the API talks to: "neo4j" or "backend"
INVOICE_STORE = os.getenv("INVOICE_STORE", "neo4j").lower()

# Review
LOW_CONFIDENCE_THRESHOLD = float(os.getenv("LOW_CONFIDENCE_THRESHOLD", "0.7"))
GST_RULES_PATH = os.getenv("GST_RULES_PATH") or os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config", "gst_rules.yaml"
)

# Logging
LOG_DIR = os.getenv("LOG_DIR", "logs")

# --- Helper Functions ---

def get_backend_base_url() -> str:
    """
    Returns the configured base URL of the dashboard backend.
    Defaults to http://localhost:8080 (the runtime behind the nginx proxy).
    """
    # Priority:
    # 1. BACKEND_BASE_URL
    # 2. VITE_API_BASE_URL (shared with the dashboard build)
    # 3. Default
    return (os.getenv("BACKEND_BASE_URL") or os.getenv("VITE_API_BASE_URL") or "http://localhost:8080").rstrip('/')
