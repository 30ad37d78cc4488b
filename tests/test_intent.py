"""Tests for intent extraction from plain-language requests."""

import pytest

from autodeploy.errors import IntentExtractionError, LLMError
from autodeploy.intent import extract_intent, parse_intent_keywords, parse_intent_response
from autodeploy.schemas import CloudProvider, DatabaseEngine, ExecutionModel, ScalingMode


class TestKeywords:
    def test_flask_on_aws_with_postgres(self):
        intent = parse_intent_keywords("Deploy this Flask application on AWS with a Postgres database")
        assert intent.cloud_provider == CloudProvider.AWS
        assert intent.database_requested
        assert intent.database_engine == DatabaseEngine.POSTGRESQL
        assert intent.scaling == ScalingMode.SINGLE
        assert intent.execution_model == ExecutionModel.VM

    def test_defaults(self):
        intent = parse_intent_keywords("Ship it")
        assert intent.cloud_provider == CloudProvider.UNSPECIFIED
        assert not intent.database_requested
        assert not intent.cdn_requested
        assert intent.description == "Ship it"

    @pytest.mark.parametrize(
        "text,provider",
        [
            ("deploy on Google Cloud", CloudProvider.GCP),
            ("use gcp please", CloudProvider.GCP),
            ("put it on Azure", CloudProvider.AZURE),
            ("an EC2 box", CloudProvider.AWS),
        ],
    )
    def test_providers(self, text, provider):
        assert parse_intent_keywords(text).cloud_provider == provider

    def test_scaling(self):
        assert parse_intent_keywords("run it on k8s").scaling == ScalingMode.KUBERNETES
        assert parse_intent_keywords("needs auto-scaling").scaling == ScalingMode.AUTO_SCALING
        assert parse_intent_keywords("behind a load balancer").scaling == ScalingMode.AUTO_SCALING

    def test_execution_model(self):
        assert parse_intent_keywords("as a Lambda").execution_model == ExecutionModel.SERVERLESS
        assert parse_intent_keywords("in a docker container").execution_model == ExecutionModel.CONTAINER

    def test_database_words(self):
        assert parse_intent_keywords("with a db").database_requested
        assert parse_intent_keywords("with MySQL").database_engine == DatabaseEngine.MYSQL
        assert not parse_intent_keywords("run my dbt jobs").database_requested

    def test_cdn(self):
        assert parse_intent_keywords("serve it through a CDN").cdn_requested
        assert parse_intent_keywords("CloudFront in front").cdn_requested


class TestResponseParsing:
    def test_valid_response(self):
        response = (
            "Here you go:\n```json\n"
            '{"cloud_provider": "gcp", "scaling": "kubernetes", "execution_model": "container", '
            '"database_requested": true, "database_engine": "null", "cdn_requested": false}\n```'
        )
        intent = parse_intent_response(response, "GKE please")
        assert intent.cloud_provider == CloudProvider.GCP
        assert intent.scaling == ScalingMode.KUBERNETES
        assert intent.database_engine is None
        assert intent.description == "GKE please"

    def test_not_json(self):
        with pytest.raises(IntentExtractionError):
            parse_intent_response("I cannot help with that", "x")

    def test_bad_enum(self):
        with pytest.raises(IntentExtractionError):
            parse_intent_response('{"cloud_provider": "oracle"}', "x")


class TestExtractIntent:
    def test_keywords_without_llm(self):
        intent = extract_intent("Deploy on GCP")
        assert intent.cloud_provider == CloudProvider.GCP

    def test_cli_override(self):
        intent = extract_intent("Deploy on GCP", cloud_provider="AWS")
        assert intent.cloud_provider == CloudProvider.AWS

    def test_llm_answer_used(self, monkeypatch):
        from autodeploy import llm

        monkeypatch.setattr(
            llm,
            "complete",
            lambda system, user, provider, config=None: '{"cloud_provider": "aws", "execution_model": "serverless"}',
        )
        intent = extract_intent("something vague", llm_provider="anthropic")
        assert intent.execution_model == ExecutionModel.SERVERLESS
        assert intent.cloud_provider == CloudProvider.AWS

    def test_llm_failure_falls_back(self, monkeypatch):
        from autodeploy import llm

        def boom(*args, **kwargs):
            raise LLMError("rate limited")

        monkeypatch.setattr(llm, "complete", boom)
        intent = extract_intent("Deploy on Azure with a CDN", llm_provider="openai")
        assert intent.cloud_provider == CloudProvider.AZURE
        assert intent.cdn_requested
