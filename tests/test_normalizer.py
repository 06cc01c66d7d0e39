"""
Tests for essential data normalization
"""
import pytest

from exceptions import UnsupportedKindException, ValidationException
from services.normalizer import (
    canonical_provider,
    ensure_media_kind,
    normalize_essential_data,
    normalize_genres,
    prune_essential_data,
)


class TestPruning:
    """Tests for empty value pruning"""

    def test_drops_empty_values(self):
        """None, blank strings, empty lists and dicts are removed"""
        data = prune_essential_data({
            'title': 'X',
            'description': '   ',
            'genres': [],
            'coverImage': None,
            'extra': {},
            'runtime': 0,
        })
        assert data == {'title': 'X', 'runtime': 0}

    def test_title_is_kept_even_when_empty(self):
        """title is the only field exempt from pruning"""
        assert prune_essential_data({'title': '', 'description': ''}) == {'title': ''}

    def test_release_period_requires_year(self):
        """releasePeriod without a year is dropped"""
        assert 'releasePeriod' not in prune_essential_data({'title': 'X', 'releasePeriod': {'month': 4}})
        assert prune_essential_data({'title': 'X', 'releasePeriod': {'year': 2020}})['releasePeriod'] == {'year': 2020}


class TestKindFields:
    """Tests for per-kind field filtering"""

    def test_fields_of_other_kinds_are_never_copied(self):
        """A movie payload does not keep game or book fields"""
        data = normalize_essential_data({
            'title': 'Arrival',
            'runtime': 116,
            'playHours': 40,
            'pageCount': 300,
            'episodes': 1,
        }, 'movie')
        assert data == {'title': 'Arrival', 'runtime': 116}

    def test_game_fields(self):
        """Game keeps platforms, metacritic and playHours"""
        data = normalize_essential_data({
            'title': 'Hades',
            'platforms': ['PC', {'name': 'Nintendo Switch'}, ''],
            'metacritic': '93',
            'playHours': 22,
            'runtime': 10,
        }, 'game')
        assert data['platforms'] == ['PC', 'Nintendo Switch']
        assert data['metacritic'] == 93
        assert data['playHours'] == 22.0
        assert 'runtime' not in data

    def test_aliases_map_to_canonical_names(self):
        """imageUrl and apiRating land in coverImage and averageRating"""
        data = normalize_essential_data({
            'title': 'Dune',
            'imageUrl': 'https://img/dune.jpg',
            'apiRating': 4.2,
        }, 'book')
        assert data['coverImage'] == 'https://img/dune.jpg'
        assert data['averageRating'] == 4.2
        assert 'imageUrl' not in data

    def test_invalid_numbers_are_dropped(self):
        """Non-numeric counts are treated as absent"""
        data = normalize_essential_data({'title': 'Berserk', 'chapters': 'many', 'volumes': 41}, 'manga')
        assert 'chapters' not in data
        assert data['volumes'] == 41

    @pytest.mark.parametrize('value', ['Infinity', '-inf', 'nan', float('inf'), 1e400, 10 ** 400])
    def test_non_finite_numbers_are_dropped(self, value):
        data = normalize_essential_data({'title': 'Monster', 'episodes': value, 'averageRating': value}, 'anime')
        assert data == {'title': 'Monster'}

    def test_release_year_filled_from_period(self):
        """releaseYear comes from releasePeriod when missing"""
        data = normalize_essential_data({'title': 'X', 'releasePeriod': {'year': '2019', 'month': 13}}, 'anime')
        assert data['releasePeriod'] == {'year': 2019}
        assert data['releaseYear'] == 2019

    def test_title_is_stripped(self):
        assert normalize_essential_data({'title': '  Frieren  '}, 'anime') == {'title': 'Frieren'}

    def test_status_is_lowercased(self):
        assert normalize_essential_data({'title': 'X', 'status': ' Ongoing '}, 'series')['status'] == 'ongoing'


class TestGenres:
    """Tests for genre normalization"""

    def test_strings_and_objects(self):
        genres = normalize_genres(['Drama', {'id': 18, 'name': 'Thriller'}, {'id': 3}, '  '])
        assert genres == [{'name': 'Drama'}, {'name': 'Thriller', 'id': '18'}]

    def test_non_list_is_empty(self):
        assert normalize_genres('Drama') == []


class TestKeys:
    """Tests for media kind and provider validation"""

    def test_unknown_kind_raises(self):
        with pytest.raises(UnsupportedKindException) as exc_info:
            ensure_media_kind('podcast')
        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {'media_kind': 'podcast'}

    def test_kind_is_case_insensitive(self):
        assert ensure_media_kind(' Anime ') == 'anime'

    def test_provider_aliases(self):
        """mal and google-books resolve to their canonical provider names"""
        assert canonical_provider('mal') == 'jikan'
        assert canonical_provider('Google-Books') == 'google_books'
        assert canonical_provider('manual') == 'manual'

    def test_unknown_provider_raises(self):
        with pytest.raises(ValidationException):
            canonical_provider('imdb')
