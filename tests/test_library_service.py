"""
Tests for per-user library tracking
"""
import pytest

from exceptions import ConflictException, NotFoundException, ValidationException
from repositories.cache_record_repository import CacheRecordRepository
from services import cache_service
from services.library_service import LibraryService, validate_notes, validate_rating

pytestmark = pytest.mark.usefixtures('app_ctx')


class TestValidators:
    """Tests for field validation"""

    @pytest.mark.parametrize('rating', [0, 6, 2.5, '4', True])
    def test_invalid_ratings(self, rating):
        with pytest.raises(ValidationException):
            validate_rating(rating)

    def test_valid_rating(self):
        assert validate_rating(5) == 5
        assert validate_rating(None) is None

    def test_notes_are_stripped(self):
        assert validate_notes('  loved it  ') == 'loved it'
        assert validate_notes('   ') is None

    def test_notes_length(self):
        assert len(validate_notes('x' * 3000)) == 3000
        with pytest.raises(ValidationException):
            validate_notes('x' * 3001)


class TestAddEntry:
    """Tests for adding titles to a library"""

    def test_defaults(self, user, anime_record):
        entry = LibraryService(user.id).add_entry(cache_record_id=anime_record.id)
        assert entry.status == 'planned'
        assert entry.media_kind == 'anime'
        assert entry.progress['episodes'] == 0
        assert entry.started_at is None
        assert entry.cache_record.id == anime_record.id

    def test_add_by_provider_key(self, user, anime_record):
        entry = LibraryService(user.id).add_entry(provider='mal', external_id='5114', media_kind='anime')
        assert entry.cache_record_id == anime_record.id

    def test_duplicate_is_conflict(self, user, anime_record):
        service = LibraryService(user.id)
        service.add_entry(cache_record_id=anime_record.id)
        with pytest.raises(ConflictException) as exc_info:
            service.add_entry(cache_record_id=anime_record.id, status='completed')
        assert exc_info.value.status_code == 409
        assert CacheRecordRepository.get_by_id(anime_record.id).reference_count == 1

    def test_same_title_for_two_users(self, user, other_user, anime_record):
        LibraryService(user.id).add_entry(cache_record_id=anime_record.id)
        LibraryService(other_user.id).add_entry(cache_record_id=anime_record.id)
        assert CacheRecordRepository.get_by_id(anime_record.id).reference_count == 2

    def test_missing_cache_record(self, user):
        with pytest.raises(NotFoundException):
            LibraryService(user.id).add_entry(cache_record_id=999)

    def test_missing_reference(self, user):
        with pytest.raises(ValidationException):
            LibraryService(user.id).add_entry()

    def test_added_as_completed_fills_progress(self, user, anime_record):
        entry = LibraryService(user.id).add_entry(cache_record_id=anime_record.id, status='completed')
        assert entry.progress['episodes'] == 24
        assert entry.progress['percentage'] == 100
        assert entry.completed_at is not None

    def test_game_entry_has_task_summary(self, user):
        record, _ = cache_service.upsert('rawg', '3328', 'game', {'title': 'The Witcher 3', 'playHours': 46})
        entry = LibraryService(user.id).add_entry(
            cache_record_id=record.id,
            progress={'tasks': [{'name': 'Main story', 'completed': True}, {'name': 'Blood and Wine'}]},
        )
        data = entry.to_dict()
        assert data['task_summary'] == {'completed': 1, 'total': 2, 'percentage': 50}
        assert data['cache_record']['essential_data']['playHours'] == 46


class TestUpdateEntry:
    """Tests for partial updates and status transitions"""

    def test_completion_autofill(self, user, anime_record):
        """Completing an anime copies the episode total and sets 100 percent"""
        service = LibraryService(user.id)
        entry = service.add_entry(cache_record_id=anime_record.id, status='in_progress')
        entry = service.update_entry(entry.id, {'status': 'completed'})

        assert entry.progress['episodes'] == 24
        assert entry.progress['percentage'] == 100
        assert entry.completed_at is not None
        assert entry.dropped_at is None
        assert entry.started_at is not None

    def test_only_present_fields_change(self, user, anime_record):
        service = LibraryService(user.id)
        entry = service.add_entry(cache_record_id=anime_record.id, user_rating=4, personal_notes='great')
        entry = service.update_entry(entry.id, {'progress': {'episodes': 7}})

        assert entry.user_rating == 4
        assert entry.personal_notes == 'great'
        assert entry.status == 'planned'
        assert entry.progress['episodes'] == 7

    def test_rating_can_be_cleared(self, user, anime_record):
        service = LibraryService(user.id)
        entry = service.add_entry(cache_record_id=anime_record.id, user_rating=4)
        entry = service.update_entry(entry.id, {'user_rating': None})
        assert entry.user_rating is None

    def test_dropped_then_planned(self, user, anime_record):
        service = LibraryService(user.id)
        entry = service.add_entry(cache_record_id=anime_record.id, status='in_progress')
        entry = service.update_entry(entry.id, {'status': 'dropped'})
        assert entry.dropped_at is not None

        entry = service.update_entry(entry.id, {'status': 'planned'})
        assert entry.started_at is None
        assert entry.dropped_at is None

    def test_explicit_timestamp_wins(self, user, anime_record):
        service = LibraryService(user.id)
        entry = service.add_entry(cache_record_id=anime_record.id)
        entry = service.update_entry(entry.id, {'status': 'in_progress', 'started_at': '2025-12-24T10:00:00Z'})
        assert entry.to_dict()['started_at'] == '2025-12-24T10:00:00+00:00'

    def test_invalid_status(self, user, anime_record):
        service = LibraryService(user.id)
        entry = service.add_entry(cache_record_id=anime_record.id)
        with pytest.raises(ValidationException):
            service.update_entry(entry.id, {'status': 'paused'})

    def test_other_users_entry_is_not_found(self, user, other_user, anime_record):
        entry = LibraryService(user.id).add_entry(cache_record_id=anime_record.id)
        with pytest.raises(NotFoundException):
            LibraryService(other_user.id).update_entry(entry.id, {'status': 'completed'})


class TestDeleteEntry:
    """Tests for removal and reference counting"""

    def test_provider_record_kept(self, user, anime_record):
        service = LibraryService(user.id)
        entry_id = service.add_entry(cache_record_id=anime_record.id).id
        result = service.delete_entry(entry_id)

        assert result == {'deleted_id': entry_id, 'cache_record_deleted': False}
        record = CacheRecordRepository.get_by_id(anime_record.id)
        assert record.reference_count == 0

    def test_manual_record_deleted_with_last_entry(self, user, other_user, manual_book):
        record_id = manual_book.id
        first = LibraryService(user.id).add_entry(cache_record_id=record_id)
        second = LibraryService(other_user.id).add_entry(cache_record_id=record_id)
        first_id, second_id = first.id, second.id
        assert CacheRecordRepository.get_by_id(record_id).reference_count == 2

        assert LibraryService(user.id).delete_entry(first_id)['cache_record_deleted'] is False
        assert CacheRecordRepository.get_by_id(record_id).reference_count == 1

        assert LibraryService(other_user.id).delete_entry(second_id)['cache_record_deleted'] is True
        assert CacheRecordRepository.get_by_id(record_id) is None

    def test_other_users_entry_is_not_found(self, user, other_user, anime_record):
        entry = LibraryService(user.id).add_entry(cache_record_id=anime_record.id)
        with pytest.raises(NotFoundException):
            LibraryService(other_user.id).delete_entry(entry.id)

    def test_referenced_records_survive_purge(self, user, anime_record):
        record_id = anime_record.id
        LibraryService(user.id).add_entry(cache_record_id=record_id)
        assert cache_service.purge('anime', 0) == 0
        assert CacheRecordRepository.get_by_id(record_id) is not None


class TestListAndStats:
    """Tests for listing and statistics"""

    def test_list_filters(self, user, other_user, anime_record, manual_book):
        service = LibraryService(user.id)
        service.add_entry(cache_record_id=anime_record.id, status='completed')
        service.add_entry(cache_record_id=manual_book.id)
        LibraryService(other_user.id).add_entry(cache_record_id=anime_record.id)

        items, total = service.list_entries()
        assert total == 2
        items, total = service.list_entries(media_kind='book')
        assert [entry.media_kind for entry in items] == ['book']
        items, total = service.list_entries(status='completed')
        assert total == 1

    def test_stats(self, user, anime_record, manual_book):
        service = LibraryService(user.id)
        service.add_entry(cache_record_id=anime_record.id, status='completed')
        service.add_entry(cache_record_id=manual_book.id, status='in_progress')

        stats = service.stats()
        assert stats['total'] == 2
        assert stats['by_status'] == {'planned': 0, 'in_progress': 1, 'completed': 1, 'dropped': 0}
        assert stats['by_kind']['anime']['total'] == 1
        assert stats['by_kind']['anime']['completed'] == 1
        assert stats['by_kind']['book']['in_progress'] == 1
        assert stats['by_kind']['movie']['total'] == 0
