"""
Tests for provider clients
"""
import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from exceptions import UnsupportedKindException, UpstreamFetchException, ValidationException
from providers import get_provider_adapter
from providers.google_books import GoogleBooksAdapter
from providers.jikan import JikanAdapter
from providers.rawg import RAWGAdapter
from providers.tmdb import TMDBAdapter
from services.normalizer import normalize_essential_data


def make_response(status_code=200, payload=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def make_adapter(cls, **kwargs):
    options = {'base_url': 'https://provider.test', 'api_key': 'secret', 'min_interval': 0, 'backoff_base': 0}
    options.update(kwargs)
    adapter = cls(**options)
    adapter.session = MagicMock()
    return adapter


class TestRequestRetries:
    """Tests for retry and error handling of provider requests"""

    @patch('providers.base.time.sleep')
    def test_retries_server_errors(self, sleep):
        adapter = make_adapter(JikanAdapter)
        adapter.session.get.side_effect = [
            make_response(503),
            make_response(200, {'data': {'mal_id': 1, 'title': 'Bebop'}}),
        ]

        assert adapter.get_by_id('1', 'anime') == {'mal_id': 1, 'title': 'Bebop'}
        assert adapter.session.get.call_count == 2

    @patch('providers.base.time.sleep')
    def test_retries_connection_errors(self, sleep):
        adapter = make_adapter(JikanAdapter)
        adapter.session.get.side_effect = [
            requests.ConnectionError('reset'),
            make_response(200, {'data': [{'mal_id': 1}]}),
        ]

        assert adapter.search('bebop', 'anime') == [{'mal_id': 1}]

    @patch('providers.base.time.sleep')
    def test_gives_up_after_max_attempts(self, sleep):
        adapter = make_adapter(JikanAdapter, max_attempts=3)
        adapter.session.get.return_value = make_response(429, headers={'Retry-After': '0'})

        with pytest.raises(UpstreamFetchException) as exc_info:
            adapter.get_by_id('1', 'anime')
        assert adapter.session.get.call_count == 3
        assert exc_info.value.status_code == 502

    @patch('providers.base.time.sleep')
    def test_client_errors_are_not_retried(self, sleep):
        adapter = make_adapter(RAWGAdapter)
        adapter.session.get.return_value = make_response(404)

        with pytest.raises(UpstreamFetchException):
            adapter.get_by_id('1', 'game')
        assert adapter.session.get.call_count == 1

    def test_missing_api_key(self):
        adapter = make_adapter(TMDBAdapter, api_key=None)
        with pytest.raises(UpstreamFetchException):
            adapter.search('matrix', 'movie')
        adapter.session.get.assert_not_called()

    def test_unsupported_kind(self):
        adapter = make_adapter(TMDBAdapter)
        with pytest.raises(UnsupportedKindException):
            adapter.search('bebop', 'anime')


class TestRateLimit:
    """Tests for the minimum interval between provider calls"""

    def test_concurrent_callers_are_spaced(self):
        adapter = make_adapter(JikanAdapter, min_interval=0.05)
        threads = [threading.Thread(target=adapter._rate_limit) for _ in range(5)]
        started = time.time()
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # first call goes straight through, the other four wait one interval each
        assert time.time() - started >= 0.19


class TestTMDB:
    """Tests for TMDB payload mapping"""

    def test_series(self):
        adapter = make_adapter(TMDBAdapter, image_base_url='https://img.test/w500')
        raw = {
            'id': 1396,
            'name': 'Breaking Bad',
            'overview': 'A high school chemist turns to crime.',
            'poster_path': '/bb.jpg',
            'genres': [{'id': 18, 'name': 'Drama'}],
            'vote_average': 8.9,
            'vote_count': 12000,
            'first_air_date': '2008-01-20',
            'episode_run_time': [45],
            'number_of_episodes': 62,
            'number_of_seasons': 5,
            'seasons': [
                {'season_number': 0, 'episode_count': 3},
                {'season_number': 1, 'episode_count': 7},
                {'season_number': 2, 'episode_count': 13},
            ],
            'status': 'Ended',
        }
        data = normalize_essential_data(adapter.to_essential(raw, 'series'), 'series')

        assert data['title'] == 'Breaking Bad'
        assert data['coverImage'] == 'https://img.test/w500/bb.jpg'
        assert data['runtime'] == 45
        assert data['episodesPerSeason'] == [7, 13]
        assert data['releasePeriod'] == {'year': 2008, 'month': 1}
        assert data['status'] == 'finished'
        assert adapter.external_id(raw) == '1396'

    def test_returning_series_is_ongoing(self):
        adapter = make_adapter(TMDBAdapter)
        data = adapter.to_essential({'name': 'X', 'status': 'Returning Series'}, 'series')
        assert data['status'] == 'ongoing'

    def test_movie(self):
        adapter = make_adapter(TMDBAdapter)
        data = adapter.to_essential({'title': 'Arrival', 'runtime': 116, 'release_date': '2016-11-11',
                                     'status': 'Released'}, 'movie')
        assert data['runtime'] == 116
        assert data['releaseYear'] == 2016
        assert data['status'] == 'finished'


class TestJikan:
    """Tests for Jikan payload mapping"""

    def test_anime(self):
        adapter = make_adapter(JikanAdapter, api_key=None)
        raw = {
            'mal_id': 5114,
            'title': 'Fullmetal Alchemist: Brotherhood',
            'images': {'jpg': {'image_url': 'https://cdn.test/s.jpg', 'large_image_url': 'https://cdn.test/l.jpg'}},
            'genres': [{'mal_id': 1, 'name': 'Action'}],
            'score': 9.1,
            'scored_by': 2000000,
            'status': 'Currently Airing',
            'aired': {'from': '2009-04-05T00:00:00+00:00'},
            'episodes': 64,
            'studios': [{'name': 'Bones'}],
        }
        data = normalize_essential_data(adapter.to_essential(raw, 'anime'), 'anime')

        assert adapter.external_id(raw) == '5114'
        assert data['coverImage'] == 'https://cdn.test/l.jpg'
        assert data['genres'] == [{'id': '1', 'name': 'Action'}]
        assert data['status'] == 'ongoing'
        assert data['releasePeriod'] == {'year': 2009, 'month': 4}
        assert data['episodes'] == 64
        assert data['studios'] == ['Bones']

    def test_manga(self):
        adapter = make_adapter(JikanAdapter, api_key=None)
        data = adapter.to_essential({'title': 'Berserk', 'status': 'On Hiatus', 'chapters': None, 'volumes': 41,
                                     'authors': [{'name': 'Miura, Kentarou'}]}, 'manga')
        assert data['status'] == 'ongoing'
        assert data['volumes'] == 41
        assert data['authors'] == ['Miura, Kentarou']


class TestRAWG:
    """Tests for RAWG payload mapping"""

    def test_game(self):
        adapter = make_adapter(RAWGAdapter)
        raw = {
            'id': 3498,
            'name': 'Grand Theft Auto V',
            'background_image': 'https://media.test/gta.jpg',
            'released': '2013-09-17',
            'rating': 4.47,
            'metacritic': 92,
            'playtime': 74,
            'platforms': [{'platform': {'name': 'PC'}}, {'platform': {'name': 'PlayStation 5'}}],
        }
        data = normalize_essential_data(adapter.to_essential(raw, 'game'), 'game')

        assert data['playHours'] == 74
        assert data['metacritic'] == 92
        assert data['platforms'] == ['PC', 'PlayStation 5']
        assert data['status'] == 'finished'

    def test_tba_is_upcoming_and_zero_playtime_dropped(self):
        adapter = make_adapter(RAWGAdapter)
        data = normalize_essential_data(adapter.to_essential({'name': 'Next', 'tba': True, 'playtime': 0}, 'game'),
                                        'game')
        assert data['status'] == 'upcoming'
        assert 'playHours' not in data


class TestGoogleBooks:
    """Tests for Google Books payload mapping"""

    def test_book(self):
        adapter = make_adapter(GoogleBooksAdapter, api_key=None)
        raw = {
            'id': 'B1tW',
            'volumeInfo': {
                'title': 'Dune',
                'authors': ['Frank Herbert'],
                'publishedDate': '1965',
                'pageCount': 412,
                'categories': ['Fiction'],
                'imageLinks': {'thumbnail': 'http://books.test/dune.jpg'},
            },
        }
        data = normalize_essential_data(adapter.to_essential(raw, 'book'), 'book')

        assert adapter.external_id(raw) == 'B1tW'
        assert data['coverImage'] == 'https://books.test/dune.jpg'
        assert data['releaseYear'] == 1965
        assert data['pageCount'] == 412
        assert data['authors'] == ['Frank Herbert']
        assert data['genres'] == [{'name': 'Fiction'}]
        assert data['status'] == 'finished'


class TestAdapterRegistry:
    """Tests for adapter lookup"""

    def test_aliases_share_one_adapter(self, app):
        adapter = get_provider_adapter('mal')
        assert isinstance(adapter, JikanAdapter)
        assert get_provider_adapter('jikan') is adapter

    def test_manual_has_no_adapter(self, app):
        with pytest.raises(ValidationException):
            get_provider_adapter('manual')
