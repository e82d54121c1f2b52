"""Tests for BaseAgent orchestration and the content creator agent."""

import logging

import pytest

from backend.app.agents.base import BaseAgent, Candidate
from backend.app.agents.content_creator import ContentCreatorAgent
from backend.app.exceptions import (
    AllProvidersFailedError,
    CapabilityMismatchError,
    NoProviderAvailableError,
    OperationFailedError,
    UnknownProviderError,
    UnsupportedModelError,
)
from backend.app.models import Capability
from backend.app.providers.resolver import ProviderResolver
from backend.app.services.factory import ServiceFactory


class EchoAgent(BaseAgent):
    """Text-only agent that returns what it generated and where."""

    required_services = (Capability.TEXT,)

    def execute(self, data):
        return {
            "text": self.text_service.generate(data["prompt"]),
            "provider": self.current_provider(),
            "model": self.current_model(),
        }


class MediaAgent(BaseAgent):
    required_services = (Capability.TEXT, Capability.IMAGE)

    def execute(self, data):
        return self.image_service.generate(data["prompt"])


@pytest.fixture
def agent(factory):
    return EchoAgent(factory)


class TestComposition:
    def test_services_are_per_agent(self, factory):
        first, second = EchoAgent(factory), EchoAgent(factory)
        assert first.text_service is not second.text_service
        assert first.has_service(Capability.TEXT)
        assert not first.has_service(Capability.IMAGE)
        assert first.image_service is None

    def test_switch_provider_applies_to_all_services(self, factory):
        agent = MediaAgent(factory)
        agent.switch_provider("studio")
        assert agent.current_provider() == "studio"
        assert agent.service(Capability.IMAGE).current_provider() == "studio"

    def test_switch_provider_without_rollback(self, factory):
        """The first failing service stops the switch; earlier ones stay switched."""
        agent = MediaAgent(factory)
        with pytest.raises(CapabilityMismatchError):
            agent.switch_provider("beta")
        assert agent.text_service.current_provider() == "beta"
        assert agent.image_service.current_provider() == "default"

    def test_switch_model_targets_offering_services(self, factory):
        agent = MediaAgent(factory)
        agent.switch_provider("studio")
        agent.switch_model("studio-image")
        assert agent.image_service.current_model() == "studio-image"
        assert agent.text_service.current_model() == "studio-text"

    def test_switch_model_nobody_offers(self, agent):
        with pytest.raises(UnsupportedModelError):
            agent.switch_model("no-such-model")

    def test_restore_provider(self, agent):
        agent.switch_provider("beta")
        agent.switch_provider("studio")
        agent.restore_provider()
        assert agent.current_provider() == "beta"

    def test_model_queries(self, agent):
        assert agent.available_models() == ["alpha-1", "alpha-2"]
        assert agent.has_model("alpha-2")
        assert agent.model_capabilities().supports(Capability.TEXT)

    def test_available_providers_aggregates_supports(self, factory):
        statuses = MediaAgent(factory).available_providers()
        assert set(statuses) == {"alpha", "beta", "pixel", "studio"}
        assert statuses["studio"].supports == [Capability.TEXT, Capability.IMAGE]
        assert statuses["pixel"].supports == [Capability.IMAGE]

    def test_has_provider(self, factory):
        agent = MediaAgent(factory)
        assert agent.has_provider("pixel")
        assert not agent.has_provider("ghost")


class TestScopedExecution:
    def test_execute_with_restores(self, agent):
        result = agent.execute_with({"prompt": "hi"}, provider="beta")
        assert result["provider"] == "beta"
        assert agent.current_provider() == "default"

    def test_execute_with_provider_and_model(self, agent):
        result = agent.execute_with({"prompt": "hi"}, provider="alpha", model="alpha-2")
        assert result["model"] == "alpha-2"
        assert result["text"] == "[alpha:alpha-2] hi"
        assert agent.current_model() == "alpha-1"

    def test_with_provider_restores_on_failure(self, agent):
        def boom(a):
            raise RuntimeError("agent failed")

        with pytest.raises(RuntimeError):
            agent.with_provider("beta", boom)
        assert agent.current_provider() == "default"
        assert agent.text_service.current_provider() == "default"

    def test_with_model(self, agent):
        assert agent.with_model("alpha-2", lambda a: a.current_model()) == "alpha-2"
        assert agent.current_model() == "alpha-1"


class TestExecuteWithFallback:
    @pytest.fixture
    def flaky_factory(self, make_catalog, make_entry):
        catalog = make_catalog(
            {
                "alpha": make_entry({"alpha-1": ["text"]}, fail_times=5),
                "beta": make_entry({"beta-1": ["text"]}, fail_times=5),
                "gamma": make_entry({"gamma-1": ["text"], "gamma-2": ["text"]}),
                "pixel": make_entry({"pixel-1": ["image"]}),
            },
            default_providers={"text": "alpha"},
            fallback_providers={"text": ["beta", "gamma"]},
        )
        return ServiceFactory(ProviderResolver(catalog))

    def test_candidates_tried_in_order(self, flaky_factory, caplog):
        agent = EchoAgent(flaky_factory)
        with caplog.at_level(logging.WARNING):
            result = agent.execute_with_fallback({"prompt": "hi"}, ["alpha", "beta", "gamma"])

        assert result["provider"] == "gamma"
        assert "Candidate alpha failed" in caplog.text
        assert "Candidate beta failed" in caplog.text
        # Pinned candidates are tried exactly once each
        resolver = flaky_factory.resolver
        assert resolver.resolve("alpha").call_count == 1
        assert resolver.resolve("beta").call_count == 1

    def test_candidate_forms(self, flaky_factory):
        agent = EchoAgent(flaky_factory)
        result = agent.execute_with_fallback(
            {"prompt": "hi"},
            [{"provider": "alpha"}, Candidate("gamma", "gamma-2")],
        )
        assert result["model"] == "gamma-2"
        assert flaky_factory.resolver.resolve("gamma").current_model == "gamma-1"

    def test_all_candidates_fail(self, flaky_factory):
        agent = EchoAgent(flaky_factory)
        with pytest.raises(AllProvidersFailedError) as exc_info:
            agent.execute_with_fallback({"prompt": "hi"}, [("alpha", None), "beta"])

        error = exc_info.value
        assert isinstance(error, NoProviderAvailableError)
        assert [candidate for candidate, _ in error.errors] == ["alpha", "beta"]
        assert all(isinstance(exc, OperationFailedError) for _, exc in error.errors)
        assert error.__cause__ is error.last_error
        assert error.last_error.provider == "beta"

    def test_unknown_candidate_skipped(self, flaky_factory, caplog):
        agent = EchoAgent(flaky_factory)
        with caplog.at_level(logging.WARNING):
            result = agent.execute_with_fallback({"prompt": "hi"}, ["ghost", "gamma"])
        assert result["provider"] == "gamma"
        assert "Candidate ghost failed" in caplog.text

    def test_candidate_missing_capability_skipped(self, factory):
        """beta has no image model, so the text+image agent moves on to studio."""
        agent = MediaAgent(factory)
        url = agent.execute_with_fallback({"prompt": "cat"}, ["beta", "studio"])
        assert url.startswith("mock://studio/")
        assert agent.text_service.current_provider() == "default"

    def test_task_error_skipped(self, factory):
        class OnceBrokenAgent(EchoAgent):
            calls = 0

            def execute(self, data):
                OnceBrokenAgent.calls += 1
                if OnceBrokenAgent.calls == 1:
                    raise RuntimeError("task bug")
                return super().execute(data)

        agent = OnceBrokenAgent(factory)
        result = agent.execute_with_fallback({"prompt": "hi"}, ["alpha", "beta"])
        assert result["provider"] == "beta"

    def test_mixed_failures_all_recorded(self, flaky_factory):
        agent = EchoAgent(flaky_factory)
        with pytest.raises(AllProvidersFailedError) as exc_info:
            agent.execute_with_fallback({"prompt": "hi"}, ["ghost", "pixel", "alpha"])
        kinds = [type(exc) for _, exc in exc_info.value.errors]
        assert kinds == [UnknownProviderError, CapabilityMismatchError, OperationFailedError]

    def test_empty_candidates(self, agent):
        with pytest.raises(NoProviderAvailableError):
            agent.execute_with_fallback({"prompt": "hi"}, [])

    def test_selection_restored_after_fallback(self, flaky_factory):
        agent = EchoAgent(flaky_factory)
        agent.execute_with_fallback({"prompt": "hi"}, ["beta", "gamma"])
        assert agent.current_provider() == "default"
        assert agent.text_service.is_pinned() is False


class TestContentCreatorAgent:
    def test_content_and_image(self, factory):
        agent = ContentCreatorAgent(factory)
        agent.switch_provider("studio")
        result = agent.execute({"topic": "Tides", "style": "creative"})

        assert result["topic"] == "Tides"
        assert result["provider"] == "studio"
        assert "Create compelling content about: Tides" in result["content"]
        assert "creative and engaging" in result["content"]
        assert result["image"].startswith("mock://studio/studio-image/")

    def test_without_image(self, factory):
        result = ContentCreatorAgent(factory).execute({"topic": "Tides", "include_image": False})
        assert result["image"] is None
        assert result["style"] == "professional"
        assert result["provider"] == "alpha"

    def test_unknown_style_uses_generic_guide(self):
        prompt = ContentCreatorAgent.build_image_prompt("Tides", "baroque")
        assert prompt.startswith("Create a modern, appealing design representing: Tides")
