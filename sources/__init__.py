# Data Source Adapters
# Remote recording search (MusicBrainz) and seeder hints

from .base import DataSource, ReleaseCandidate
from .musicbrainz import MusicBrainzSource
from .seeders import Seeder, SeederTable

__all__ = [
    'DataSource',
    'ReleaseCandidate',
    'MusicBrainzSource',
    'Seeder',
    'SeederTable'
]
