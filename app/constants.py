import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_DIR = os.environ.get('MEDIATRACK_CONFIG_DIR') or os.path.join(APP_DIR, 'config')
DB_FILE = os.path.join(CONFIG_DIR, 'mediatrack.db')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'settings.yaml')

MEDIATRACK_DB = os.environ.get('DATABASE_URL') or 'sqlite:///' + DB_FILE

BUILD_VERSION = '20261019_0900'

# Media kinds
MEDIA_KIND_MOVIE = 'movie'
MEDIA_KIND_SERIES = 'series'
MEDIA_KIND_ANIME = 'anime'
MEDIA_KIND_MANGA = 'manga'
MEDIA_KIND_BOOK = 'book'
MEDIA_KIND_GAME = 'game'

MEDIA_KINDS = [
    MEDIA_KIND_MOVIE,
    MEDIA_KIND_SERIES,
    MEDIA_KIND_ANIME,
    MEDIA_KIND_MANGA,
    MEDIA_KIND_BOOK,
    MEDIA_KIND_GAME,
]

# Metadata providers
PROVIDER_TMDB = 'tmdb'
PROVIDER_JIKAN = 'jikan'
PROVIDER_RAWG = 'rawg'
PROVIDER_GOOGLE_BOOKS = 'google_books'
PROVIDER_MANUAL = 'manual'

PROVIDERS = [
    PROVIDER_TMDB,
    PROVIDER_JIKAN,
    PROVIDER_RAWG,
    PROVIDER_GOOGLE_BOOKS,
    PROVIDER_MANUAL,
]

PROVIDER_ALIASES = {
    'mal': PROVIDER_JIKAN,
    'myanimelist': PROVIDER_JIKAN,
    'google-books': PROVIDER_GOOGLE_BOOKS,
    'googlebooks': PROVIDER_GOOGLE_BOOKS,
}

# Library entry status
STATUS_PLANNED = 'planned'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_DROPPED = 'dropped'

LIBRARY_STATUSES = [
    STATUS_PLANNED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_DROPPED,
]

# Content lifecycle, drives the refresh window of a cache record
LIFECYCLE_ONGOING = 'ongoing'
LIFECYCLE_UPCOMING = 'upcoming'
LIFECYCLE_FINISHED = 'finished'

LIFECYCLE_ONGOING_VALUES = {'ongoing', 'airing'}
LIFECYCLE_UPCOMING_VALUES = {'upcoming', 'announced'}

HOUR = 60 * 60
DAY = 24 * HOUR

LIFECYCLE_TTL_SECONDS = {
    LIFECYCLE_ONGOING: DAY,
    LIFECYCLE_UPCOMING: 7 * DAY,
    LIFECYCLE_FINISHED: 30 * DAY,
}

# Manual merges always get a fixed one day window
MERGE_TTL_SECONDS = DAY

# Essential data layout
COMMON_FIELDS = [
    'title',
    'description',
    'coverImage',
    'releaseYear',
    'releasePeriod',
    'genres',
    'averageRating',
    'ratingCount',
    'status',
]

KIND_FIELDS = {
    MEDIA_KIND_MOVIE: ['runtime'],
    MEDIA_KIND_SERIES: ['runtime', 'episodes', 'seasons', 'episodesPerSeason'],
    MEDIA_KIND_ANIME: ['episodes', 'popularity', 'members', 'studios'],
    MEDIA_KIND_MANGA: ['chapters', 'volumes', 'pageCount', 'popularity', 'members', 'authors'],
    MEDIA_KIND_BOOK: ['pageCount', 'authors'],
    MEDIA_KIND_GAME: ['playHours', 'metacritic', 'platforms'],
}

INTEGER_FIELDS = {'releaseYear', 'ratingCount', 'runtime', 'episodes', 'seasons', 'popularity',
                  'members', 'chapters', 'volumes', 'pageCount', 'metacritic'}
FLOAT_FIELDS = {'averageRating', 'playHours'}
STRING_LIST_FIELDS = {'studios', 'authors', 'platforms'}

FIELD_ALIASES = {
    'imageUrl': 'coverImage',
    'apiRating': 'averageRating',
    'apiVoteCount': 'ratingCount',
    'metacriticScore': 'metacritic',
    'playtime': 'playHours',
}

# Survive a merge when the new payload omits them
STICKY_FIELDS = ['playHours', 'metacritic']

# Per-kind progress counters (game tasks are handled separately)
PROGRESS_FIELDS = {
    MEDIA_KIND_ANIME: ['episodes'],
    MEDIA_KIND_MANGA: ['chapters', 'volumes'],
    MEDIA_KIND_SERIES: ['seasons', 'episodes'],
    MEDIA_KIND_MOVIE: ['minutes'],
    MEDIA_KIND_GAME: ['hours'],
    MEDIA_KIND_BOOK: ['pages', 'percentage'],
}

# progress field -> essential data total used when an entry is completed
COMPLETION_TOTALS = {
    MEDIA_KIND_ANIME: {'episodes': 'episodes'},
    MEDIA_KIND_MANGA: {'chapters': 'chapters', 'volumes': 'volumes'},
    MEDIA_KIND_SERIES: {'seasons': 'seasons', 'episodes': 'episodes'},
    MEDIA_KIND_MOVIE: {'minutes': 'runtime'},
    MEDIA_KIND_BOOK: {'pages': 'pageCount'},
    MEDIA_KIND_GAME: {},
}

# Limits
NOTES_MAX_LENGTH = 3000
RATING_MIN = 1
RATING_MAX = 5
DEFAULT_PER_PAGE = 50
MAX_PER_PAGE = 200

DEFAULT_SETTINGS = {
    "providers": {
        "tmdb": {
            "api_key": "",
            "base_url": "https://api.themoviedb.org/3",
            "image_base_url": "https://image.tmdb.org/t/p/w500",
            "language": "en-US",
        },
        "jikan": {
            "base_url": "https://api.jikan.moe/v4",
            "min_interval": 0.4,
        },
        "rawg": {
            "api_key": "",
            "base_url": "https://api.rawg.io/api",
        },
        "google_books": {
            "api_key": "",
            "base_url": "https://www.googleapis.com/books/v1",
            "lang_restrict": "",
        },
    },
    "http": {
        "timeout": 10,
        "max_attempts": 3,
        "backoff_base": 1.0,
        "min_interval": 0.25,
    },
    "cache": {
        "purge_days": 30,
    },
}

# Environment variables that override provider api keys
PROVIDER_KEY_ENV = {
    PROVIDER_TMDB: 'TMDB_API_KEY',
    PROVIDER_RAWG: 'RAWG_API_KEY',
    PROVIDER_GOOGLE_BOOKS: 'GOOGLE_BOOKS_API_KEY',
}
