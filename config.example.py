"""
Example configuration file for the episode monitor
Copy this file to config.py and fill in your actual values.
Anything left out falls back to environment variables, then defaults.
"""

# === Scraper Configuration ===
SCRAPE_URL = 'https://toonstream.love/'  # Homepage; also used as Referer
TIMEOUT_MS = 30000  # HTTP timeout per attempt
MAX_RETRIES = 3  # Retries per proxy (attempt budget = retries x proxy count)
SCRAPE_DELAY_MS = 1000  # Delay between failed attempts

# === Monitoring Configuration ===
POLL_INTERVAL_MS = 3000  # Delay between poll cycles, measured from cycle end
CARD_DELAY_MS = 500  # Delay between episode cards within a cycle
MAX_LATEST_EPISODES = 9  # Size of the latest-episodes window

# === Proxy Configuration ===
# Format: 'host:port' or 'host:port:user:pass'
PROXY_LIST = []

# === TMDB Configuration (optional) ===
TMDB_API_KEY = ''  # Leave empty to disable enrichment
TMDB_DELAY_MS = 250  # Delay before each TMDB call

# === Storage Configuration ===
STORAGE_BACKEND = ''  # 'supabase', 'sqlite' or 'memory'; empty = supabase if credentials are set
SUPABASE_URL = 'https://your-project.supabase.co'
SUPABASE_SERVICE_ROLE_KEY = 'your_service_role_key'
SQLITE_PATH = 'data/episodes.db'

# === Logging Configuration ===
LOG_LEVEL = 'INFO'  # Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
MONITOR_LOG_FILE = 'logs/monitor.log'

# === Control API Configuration ===
API_HOST = '0.0.0.0'
API_PORT = 3000
