"""Tests for the local blob store and artifact publishing.

Run: pytest tests/test_storage_publish.py -v
"""
from io import BytesIO

import pytest
from PIL import Image

from conftest import RecordingStore, StaticVectorizer
from dtfprint.pipeline.candidate import CandidatePipeline
from dtfprint.pipeline.publish import (
    PNG_CONTENT_TYPE,
    SVG_CONTENT_TYPE,
    publish_candidate,
    publish_candidates,
)
from dtfprint.storage.local import LocalBlobStore


class TestLocalBlobStore:
    def test_put_writes_nested_file(self, tmp_path):
        store = LocalBlobStore(tmp_path)

        url = store.put("dtf/abc-final.png", b"payload", PNG_CONTENT_TYPE)

        assert (tmp_path / "dtf" / "abc-final.png").read_bytes() == b"payload"
        assert url.startswith("file://")

    def test_public_base_url(self, tmp_path):
        store = LocalBlobStore(tmp_path, public_base_url="https://cdn.example/blobs/")
        assert store.put("dtf/x.png", b"1", PNG_CONTENT_TYPE) == "https://cdn.example/blobs/dtf/x.png"

    @pytest.mark.parametrize("name", ["../escape.png", "dtf/../../etc/passwd", "", "/"])
    def test_rejects_unsafe_names(self, tmp_path, name):
        with pytest.raises(ValueError):
            LocalBlobStore(tmp_path).resolve(name)

    def test_segments_are_sanitized(self, tmp_path):
        path = LocalBlobStore(tmp_path).resolve("dtf/my file?.png")
        assert path == (tmp_path / "dtf" / "my_file_.png").resolve()


class TestPublish:
    @pytest.fixture
    def result(self, small_spec, subject_png):
        return CandidatePipeline(small_spec).run(0, subject_png)

    def test_final_and_proof_are_uploaded_once(self, result):
        store = RecordingStore()

        option = publish_candidate(result, store, new_id=lambda: "id-1")

        assert [(name, ctype) for name, _, ctype in store.puts] == [
            ("dtf/id-1-final.png", PNG_CONTENT_TYPE),
            ("dtf/id-1-proof.png", PNG_CONTENT_TYPE),
        ]
        assert option.final_url == "https://blobs.example/dtf/id-1-final.png"
        assert option.proof_url == "https://blobs.example/dtf/id-1-proof.png"
        assert option.svg_url is None

    def test_png_carries_print_dpi(self, result):
        store = RecordingStore()
        publish_candidate(result, store, dpi=300)

        image = Image.open(BytesIO(store.puts[0][1]))
        assert image.size == (48, 28)
        assert image.mode == "RGBA"
        assert image.info["dpi"] == pytest.approx((300, 300), abs=0.1)

    def test_vector_is_uploaded_when_present(self, small_spec, subject_png):
        result = CandidatePipeline(small_spec, vectorize=True, vectorizer=StaticVectorizer()).run(0, subject_png)
        store = RecordingStore()

        option = publish_candidate(result, store, new_id=lambda: "v")

        assert store.puts[-1] == ("dtf/v-vector.svg", b"<svg/>", SVG_CONTENT_TYPE)
        assert option.svg_url == "https://blobs.example/dtf/v-vector.svg"

    def test_publish_many_uses_distinct_ids(self, result):
        store = RecordingStore()

        options = publish_candidates([result, result], store)

        assert len({option.id for option in options}) == 2
        assert len(store.puts) == 4

    def test_store_errors_propagate(self, result):
        class BrokenStore:
            def put(self, name, data, content_type):
                raise OSError("disk full")

        with pytest.raises(OSError):
            publish_candidate(result, BrokenStore())
