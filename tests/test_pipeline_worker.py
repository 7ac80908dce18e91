"""Tests for the single record worker."""

from pathlib import Path
import tempfile

from qrcontacts.directory import AttributeRecord
from qrcontacts.pipeline.coordinator import RecordTask
from qrcontacts.pipeline.worker import process_record
from qrcontacts.render import RenderConfiguration


class ExplodingEncoder:
    name = "exploding"

    def encode(self, data, ecc_level):
        raise RuntimeError("encoder crashed")


class TestProcessRecord:
    """Tests for process_record() function."""

    def test_writes_image(self, jane, fake_encoder):
        """Test a valid record is rendered and written."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "card.png"
            result = process_record(
                RecordTask(index=0, record=jane, output_path=path),
                RenderConfiguration(),
                encoder=fake_encoder,
            )

            assert result.success
            assert result.error is None
            assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
            assert result.bytes_written == path.stat().st_size

    def test_dry_run_writes_nothing(self, jane, fake_encoder):
        """Test dry runs render without writing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "card.png"
            result = process_record(
                RecordTask(index=0, record=jane, output_path=path),
                RenderConfiguration(),
                encoder=fake_encoder,
                dry_run=True,
            )

            assert result.success
            assert not path.exists()
            assert len(fake_encoder.calls) == 1

    def test_missing_name_fails(self, fake_encoder):
        """Test that records without names fail before rendering."""
        record = AttributeRecord(identity="svc", display_name="Backup Service")
        result = process_record(
            RecordTask(index=3, record=record, output_path=None),
            RenderConfiguration(),
            encoder=fake_encoder,
        )

        assert not result.success
        assert result.index == 3
        assert result.identity == "svc"
        assert result.error_type == "MissingFieldError"
        assert fake_encoder.calls == []

    def test_duplicate_fails(self, jane, fake_encoder):
        """Test that duplicate tasks fail without writing."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "card.png"
            result = process_record(
                RecordTask(index=1, record=jane, output_path=path, duplicate=True),
                RenderConfiguration(),
                encoder=fake_encoder,
            )

            assert not result.success
            assert result.error_type == "DuplicateOutputPathError"
            assert not path.exists()

    def test_capacity_error_fails_without_file(self, jane, make_fake_encoder):
        """Test that capacity errors are reported and nothing is written."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "card.png"
            result = process_record(
                RecordTask(index=0, record=jane, output_path=path),
                RenderConfiguration(),
                encoder=make_fake_encoder(capacity=10),
            )

            assert not result.success
            assert result.error_type == "EncodingCapacityError"
            assert not path.exists()

    def test_write_error_fails(self, jane, fake_encoder):
        """Test that write errors are reported as record failures."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "missing-dir" / "card.png"
            result = process_record(
                RecordTask(index=0, record=jane, output_path=path),
                RenderConfiguration(),
                encoder=fake_encoder,
            )

            assert not result.success
            assert result.error_type == "OutputWriteError"

    def test_unexpected_error_is_contained(self, jane):
        """Test that unexpected exceptions become failures, not crashes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            result = process_record(
                RecordTask(index=0, record=jane, output_path=Path(tmpdir) / "card.png"),
                RenderConfiguration(),
                encoder=ExplodingEncoder(),
            )

            assert not result.success
            assert result.error_type == "RuntimeError"
            assert "encoder crashed" in result.error
