"""Tests for upload models."""
import pytest
from savebackup.core.exceptions import ProtocolError
from savebackup.core.upload.models import (
    MultipartSession,
    PartRange,
    PartResult,
    UploadProgress,
    order_parts
)


class TestPartModels:
    """Test suite for PartRange and PartResult."""

    def test_part_range_size(self):
        """Test size is end minus start."""
        assert PartRange(part_number=1, start=10, end=25).size == 15

    def test_part_result_payload(self):
        """Test completion payload keys."""
        assert PartResult(2, 'abc').to_dict() == {'partNumber': 2, 'etag': 'abc'}


class TestMultipartSession:
    """Test suite for MultipartSession."""

    @pytest.fixture
    def init_data(self):
        """Valid init response."""
        return {'uploadId': 'u1', 'key': 'k1', 'chunkSize': 4194304, 'totalParts': 3}

    def test_from_init_response(self, init_data):
        """Test parsing a valid init response."""
        session = MultipartSession.from_init_response(init_data)

        assert session.upload_id == 'u1'
        assert session.object_key == 'k1'
        assert session.chunk_size == 4194304
        assert session.total_parts == 3
        assert session.part_urls == {}

    def test_numeric_strings_accepted(self, init_data):
        """Test numeric fields given as strings."""
        init_data.update(chunkSize='1024', totalParts='2')

        session = MultipartSession.from_init_response(init_data)

        assert (session.chunk_size, session.total_parts) == (1024, 2)

    @pytest.mark.parametrize('field', ['uploadId', 'key', 'chunkSize', 'totalParts'])
    def test_missing_field(self, init_data, field):
        """Test each required field."""
        del init_data[field]

        with pytest.raises(ProtocolError):
            MultipartSession.from_init_response(init_data)

    def test_provider_error_message(self):
        """Test the provider's error text is surfaced."""
        with pytest.raises(ProtocolError, match="quota exceeded"):
            MultipartSession.from_init_response({'error': 'quota exceeded'})

    def test_non_positive_values(self, init_data):
        """Test zero chunk size is rejected."""
        init_data['chunkSize'] = 0

        with pytest.raises(ProtocolError):
            MultipartSession.from_init_response(init_data)

    def test_not_a_dict(self):
        """Test non-object response."""
        with pytest.raises(ProtocolError):
            MultipartSession.from_init_response(None)

    def test_set_part_urls_from_mapping(self, init_data):
        """Test JSON object keys are converted to part numbers."""
        session = MultipartSession.from_init_response(init_data)

        session.set_part_urls({'1': 'u/1', '2': 'u/2', '3': 'u/3'})

        assert session.part_urls == {1: 'u/1', 2: 'u/2', 3: 'u/3'}

    def test_set_part_urls_from_list(self, init_data):
        """Test list payloads are indexed by part number."""
        session = MultipartSession.from_init_response(init_data)

        session.set_part_urls([None, 'u/1', 'u/2', 'u/3'])

        assert session.part_urls == {1: 'u/1', 2: 'u/2', 3: 'u/3'}

    def test_set_part_urls_list_slot_zero_unused(self, init_data):
        """Test the first list entry never becomes part 1."""
        session = MultipartSession.from_init_response(init_data)

        with pytest.raises(ProtocolError, match=r"\[3\]"):
            session.set_part_urls(['u/1', 'u/2', 'u/3'])

    def test_set_part_urls_missing(self, init_data):
        """Test a missing part URL is a protocol error."""
        session = MultipartSession.from_init_response(init_data)

        with pytest.raises(ProtocolError, match=r"\[2\]"):
            session.set_part_urls({'1': 'u/1', '3': 'u/3'})

    def test_set_part_urls_invalid_payload(self, init_data):
        """Test unexpected payload types."""
        session = MultipartSession.from_init_response(init_data)

        with pytest.raises(ProtocolError):
            session.set_part_urls(None)


class TestOrderParts:
    """Test suite for order_parts."""

    def test_sorts_by_part_number(self):
        """Test completion order does not leak into finalize order."""
        parts = [PartResult(3, 'c'), PartResult(1, 'a'), PartResult(2, 'b')]

        ordered = order_parts(parts, 3)

        assert [p.part_number for p in ordered] == [1, 2, 3]

    def test_missing_part(self):
        """Test missing part raises before finalize."""
        with pytest.raises(ProtocolError, match="missing parts \\[2\\]"):
            order_parts([PartResult(1, 'a'), PartResult(3, 'c')], 3)

    def test_duplicate_part(self):
        """Test duplicate part raises."""
        with pytest.raises(ProtocolError, match="duplicated parts \\[1\\]"):
            order_parts([PartResult(1, 'a'), PartResult(1, 'b')], 2)


class TestUploadProgress:
    """Test suite for UploadProgress."""

    def test_percentage(self):
        """Test percentage calculation."""
        progress = UploadProgress(total_parts=4, uploaded_parts=1)

        assert progress.fraction == 0.25
        assert progress.percentage == 25.0
        assert not progress.is_complete

    def test_complete(self):
        """Test completion."""
        assert UploadProgress(total_parts=2, uploaded_parts=2).is_complete

    def test_zero_parts(self):
        """Test empty upload reports zero."""
        assert UploadProgress(total_parts=0).percentage == 0.0
