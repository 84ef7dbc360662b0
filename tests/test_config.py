"""Tests for gcs_avro.config -- config files, env expansion, destination config."""

from __future__ import annotations

import json
import os
from unittest.mock import patch

import pytest

from gcs_avro.config import (
    GcsDestinationConfig,
    HmacKeyCredential,
    expand_env,
    load_config_file,
    load_dotenv,
    parse_dotenv,
)
from gcs_avro.errors import InvalidCodecError
from gcs_avro.format_config import DeflateCodec, NullCodec


class TestLoadDotenv:
    def test_loads_vars_into_environ(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("FOO=bar\nBAZ=qux\n")
        with patch.dict(os.environ, {}, clear=True):
            load_dotenv(str(env_file))
            assert os.environ["FOO"] == "bar"
            assert os.environ["BAZ"] == "qux"

    def test_does_not_overwrite_existing(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("FOO=new\n")
        with patch.dict(os.environ, {"FOO": "old"}, clear=True):
            load_dotenv(str(env_file))
            assert os.environ["FOO"] == "old"

    def test_skips_comments_and_strips_quotes(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("# comment\n\nA='quoted'\nB=\"double\"\n")
        with patch.dict(os.environ, {}, clear=True):
            load_dotenv(str(env_file))
            assert os.environ["A"] == "quoted"
            assert os.environ["B"] == "double"

    def test_noop_when_file_missing(self, tmp_path):
        assert load_dotenv(str(tmp_path / "no-such-file")) == 0

    def test_returns_number_added(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("NEW=1\nKEPT=2\n")
        with patch.dict(os.environ, {"KEPT": "old"}, clear=True):
            assert load_dotenv(env_file) == 1

    def test_reads_file_once(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("ONCE=1\n")
        with patch.dict(os.environ, {}, clear=True):
            assert load_dotenv(env_file) == 1
            del os.environ["ONCE"]
            assert load_dotenv(env_file) == 0
            assert "ONCE" not in os.environ


class TestParseDotenv:
    def test_export_prefix_and_comments(self):
        text = "# note\nexport A=1\nB = 'two'\nnot a pair\n"
        assert parse_dotenv(text) == {"A": "1", "B": "two"}

    def test_value_may_contain_equals(self):
        assert parse_dotenv("URL=a=b") == {"URL": "a=b"}


class TestExpandEnv:
    def test_expands_reference(self):
        with patch.dict(os.environ, {"BUCKET": "prod"}):
            assert expand_env("${BUCKET}-exports") == "prod-exports"

    def test_missing_var_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(KeyError, match="NOPE"):
                expand_env("${NOPE}")

    def test_fallback_used_when_unset(self):
        with patch.dict(os.environ, {}, clear=True):
            assert expand_env("${REGION:-us-east1}") == "us-east1"

    def test_env_wins_over_fallback(self):
        with patch.dict(os.environ, {"REGION": "eu"}):
            assert expand_env("${REGION:-us-east1}") == "eu"

    def test_non_strings_pass_through(self):
        assert expand_env(5) == 5
        assert expand_env(None) is None


class TestLoadConfigFile:
    def test_json(self, tmp_path):
        p = tmp_path / "cfg.json"
        p.write_text(json.dumps({"gcs_bucket_name": "b"}))
        assert load_config_file(p) == {"gcs_bucket_name": "b"}

    def test_yaml(self, tmp_path):
        p = tmp_path / "cfg.yaml"
        p.write_text("gcs_bucket_name: b\nformat:\n  part_size_mb: 6\n")
        assert load_config_file(str(p)) == {
            "gcs_bucket_name": "b", "format": {"part_size_mb": 6},
        }

    def test_unknown_suffix_parsed_as_yaml(self, tmp_path):
        p = tmp_path / "dest.conf"
        p.write_text("gcs_bucket_name: b\n")
        assert load_config_file(p) == {"gcs_bucket_name": "b"}

    def test_non_mapping_raises(self, tmp_path):
        p = tmp_path / "cfg.yml"
        p.write_text("- a\n- b\n")
        with pytest.raises(TypeError):
            load_config_file(p)


class TestHmacKeyCredential:
    def test_parses_keys(self):
        cred = HmacKeyCredential.from_config({
            "credential_type": "HMAC_KEY",
            "hmac_key_access_id": "id",
            "hmac_key_secret": "secret",
        })
        assert cred.access_id == "id"
        assert cred.secret == "secret"
        assert cred.credential_type == "HMAC_KEY"

    def test_secret_not_in_repr(self):
        cred = HmacKeyCredential(access_id="id", secret="topsecret")
        assert "topsecret" not in repr(cred)

    def test_rejects_other_credential_types(self):
        with pytest.raises(ValueError, match="credential_type"):
            HmacKeyCredential.from_config({
                "credential_type": "SERVICE_ACCOUNT",
                "hmac_key_access_id": "id",
                "hmac_key_secret": "secret",
            })

    def test_missing_secret_raises(self):
        with pytest.raises(ValueError, match="hmac_key_secret"):
            HmacKeyCredential.from_config({"hmac_key_access_id": "id"})

    def test_expands_env(self):
        with patch.dict(os.environ, {"HMAC_SECRET": "from-env"}):
            cred = HmacKeyCredential.from_config({
                "hmac_key_access_id": "id",
                "hmac_key_secret": "${HMAC_SECRET}",
            })
        assert cred.secret == "from-env"


class TestGcsDestinationConfig:
    def test_base_fields(self, make_config):
        cfg = GcsDestinationConfig.from_config(make_config())
        assert cfg.bucket_name == "test-bucket-name"
        assert cfg.bucket_path == "test_path"
        assert cfg.bucket_region == "us-east-2"
        assert cfg.credential.access_id == "some_hmac_key"
        assert cfg.credential.secret == "some_key_secret"

    def test_part_size_from_format(self, make_config):
        cfg = GcsDestinationConfig.from_config(
            make_config({"format_type": "AVRO", "part_size_mb": 6})
        )
        assert cfg.format_config.format_type == "AVRO"
        assert cfg.format_config.part_size_mb == 6
        assert cfg.format_config.part_size_bytes == 6291456

    def test_absent_part_size_defaults(self, make_config):
        cfg = GcsDestinationConfig.from_config(make_config({"format_type": "AVRO"}))
        assert cfg.format_config.part_size_bytes == 5242880

    def test_absent_format_defaults_to_avro(self, make_config):
        cfg = GcsDestinationConfig.from_config(make_config())
        assert cfg.format_config.codec == NullCodec()
        assert cfg.format_config.part_size_mb == 5

    def test_codec_from_format(self, make_config):
        cfg = GcsDestinationConfig.from_config(make_config({
            "format_type": "AVRO",
            "compression_codec": {"codec": "deflate", "compression_level": 5},
        }))
        assert cfg.format_config.codec == DeflateCodec(5)

    def test_invalid_codec_propagates(self, make_config):
        with pytest.raises(InvalidCodecError):
            GcsDestinationConfig.from_config(make_config({
                "format_type": "AVRO",
                "compression_codec": {"codec": "bi-directional-bfs"},
            }))

    def test_missing_keys_raise(self, make_config):
        config = make_config()
        del config["gcs_bucket_name"]
        with pytest.raises(ValueError, match="gcs_bucket_name"):
            GcsDestinationConfig.from_config(config)

    def test_from_yaml_file(self, tmp_path):
        p = tmp_path / "dest.yaml"
        p.write_text(
            "gcs_bucket_name: b\n"
            "gcs_bucket_path: p\n"
            "gcs_bucket_region: us-east1\n"
            "credential:\n"
            "  credential_type: HMAC_KEY\n"
            "  hmac_key_access_id: id\n"
            "  hmac_key_secret: s\n"
            "format:\n"
            "  format_type: AVRO\n"
            "  compression_codec:\n"
            "    codec: deflate\n"
            "  part_size_mb: 6\n"
        )
        cfg = GcsDestinationConfig.from_config(p)
        assert cfg.bucket_name == "b"
        assert cfg.format_config.codec == DeflateCodec(0)
        assert cfg.format_config.part_size_bytes == 6291456

    @patch("gcs_avro.config.boto3")
    def test_s3_client_targets_gcs(self, mock_boto3, make_config):
        cfg = GcsDestinationConfig.from_config(make_config())
        client = cfg.s3_client()

        assert client is mock_boto3.client.return_value
        mock_boto3.client.assert_called_once_with(
            "s3",
            endpoint_url="https://storage.googleapis.com",
            region_name="us-east-2",
            aws_access_key_id="some_hmac_key",
            aws_secret_access_key="some_key_secret",
        )
