"""
Configuration classes for Flask application.
Entity data comes from an external store; nothing here talks to a database directly.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _split_env_list(value):
    return tuple(item.strip().lower() for item in value.split(',') if item.strip())


class Config:
    """Base configuration class."""
    # Flask core settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Data store collaborator: 'memory', 'json' or 'rest'
    DATA_BACKEND = os.environ.get('DATA_BACKEND', 'json')
    ENTITIES_FILE = os.environ.get('ENTITIES_FILE', 'data/bookstores.json')

    # Supabase-style REST backend
    DATA_API_BASE_URL = os.environ.get('DATA_API_BASE_URL', '')
    DATA_API_KEY = os.environ.get('DATA_API_KEY', '')
    DATA_API_TABLE = os.environ.get('DATA_API_TABLE', 'bookstores')
    DATA_API_TIMEOUT = int(os.environ.get('DATA_API_TIMEOUT', 10))  # seconds
    DATA_API_PAGE_SIZE = int(os.environ.get('DATA_API_PAGE_SIZE', 1000))

    # Full entity listings fetched over REST are cached on disk for this long
    SNAPSHOT_CACHE_MINUTES = int(os.environ.get('SNAPSHOT_CACHE_MINUTES', 30))

    # URL shapes
    ENTITY_KIND = os.environ.get('ENTITY_KIND', 'listing')
    LEGACY_ENTITY_KINDS = _split_env_list(os.environ.get('LEGACY_ENTITY_KINDS', 'bookstore,bookshop'))
    LISTING_PATH = os.environ.get('LISTING_PATH', '/directory')
    API_PREFIX = os.environ.get('API_PREFIX', '/api/')
    STATIC_ALIASES = {
        '/submit': '/submit-listing',
    }

    # Canonical index lifecycle: 'sync', 'background', 'lazy' or 'off'
    INDEX_BUILD_MODE = os.environ.get('INDEX_BUILD_MODE', 'background')
    INDEX_REFRESH_MINUTES = int(os.environ.get('INDEX_REFRESH_MINUTES', 30))  # 0 disables
    INDEX_REFRESH_MAX_MINUTES = int(os.environ.get('INDEX_REFRESH_MAX_MINUTES', 24 * 60))
    INDEX_MANUAL_REFRESH_MIN_SECONDS = int(os.environ.get('INDEX_MANUAL_REFRESH_MIN_SECONDS', 300))
    # Lazy mode: after a failed first build, requests skip the store for this long
    INDEX_LAZY_RETRY_SECONDS = int(os.environ.get('INDEX_LAZY_RETRY_SECONDS', 60))

    # Admin refresh endpoint (disabled when empty)
    ADMIN_REFRESH_PASSWORD = os.environ.get('ADMIN_REFRESH_PASSWORD', '')

    # Region code to name mapping (US states, DC, US territories, Canadian provinces/territories)
    REGION_NAMES = {
        'AL': 'Alabama',
        'AK': 'Alaska',
        'AZ': 'Arizona',
        'AR': 'Arkansas',
        'CA': 'California',
        'CO': 'Colorado',
        'CT': 'Connecticut',
        'DE': 'Delaware',
        'DC': 'District of Columbia',
        'FL': 'Florida',
        'GA': 'Georgia',
        'HI': 'Hawaii',
        'ID': 'Idaho',
        'IL': 'Illinois',
        'IN': 'Indiana',
        'IA': 'Iowa',
        'KS': 'Kansas',
        'KY': 'Kentucky',
        'LA': 'Louisiana',
        'ME': 'Maine',
        'MD': 'Maryland',
        'MA': 'Massachusetts',
        'MI': 'Michigan',
        'MN': 'Minnesota',
        'MS': 'Mississippi',
        'MO': 'Missouri',
        'MT': 'Montana',
        'NE': 'Nebraska',
        'NV': 'Nevada',
        'NH': 'New Hampshire',
        'NJ': 'New Jersey',
        'NM': 'New Mexico',
        'NY': 'New York',
        'NC': 'North Carolina',
        'ND': 'North Dakota',
        'OH': 'Ohio',
        'OK': 'Oklahoma',
        'OR': 'Oregon',
        'PA': 'Pennsylvania',
        'RI': 'Rhode Island',
        'SC': 'South Carolina',
        'SD': 'South Dakota',
        'TN': 'Tennessee',
        'TX': 'Texas',
        'UT': 'Utah',
        'VT': 'Vermont',
        'VA': 'Virginia',
        'WA': 'Washington',
        'WV': 'West Virginia',
        'WI': 'Wisconsin',
        'WY': 'Wyoming',
        'PR': 'Puerto Rico',
        'VI': 'Virgin Islands',
        'GU': 'Guam',
        'AS': 'American Samoa',
        'MP': 'Northern Mariana Islands',
        'AB': 'Alberta',
        'BC': 'British Columbia',
        'MB': 'Manitoba',
        'NB': 'New Brunswick',
        'NL': 'Newfoundland and Labrador',
        'NS': 'Nova Scotia',
        'NT': 'Northwest Territories',
        'NU': 'Nunavut',
        'ON': 'Ontario',
        'PE': 'Prince Edward Island',
        'QC': 'Quebec',
        'SK': 'Saskatchewan',
        'YT': 'Yukon',
    }

    @staticmethod
    def get_rest_table_url(base_url, table):
        """
        Get the REST endpoint for an entity table.

        Args:
            base_url: Project base URL (e.g., 'https://xyz.supabase.co')
            table: Table name (e.g., 'bookstores')

        Returns:
            str: Complete table URL
        """
        return f"{base_url.rstrip('/')}/rest/v1/{table}"


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Test configuration: in-memory data, synchronous index build, no timers."""
    TESTING = True
    WTF_CSRF_ENABLED = False
    DATA_BACKEND = 'memory'
    INDEX_BUILD_MODE = 'sync'
    INDEX_REFRESH_MINUTES = 0
    INDEX_MANUAL_REFRESH_MIN_SECONDS = 0
    ADMIN_REFRESH_PASSWORD = 'test_password'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
