"""Engine configuration loading regression tests."""

import os
import tempfile
import unittest

from tutor_engine.config import (
    CONFIG_FILE_ENV,
    EngineConfigError,
    get_engine_config,
    load_engine_config,
    reset_engine_config_for_testing,
)
from tutor_engine.models import FeedbackPolarity, PersonaId
from tutor_engine.persona.selector import PersonaSelector


class _EnvMixin:
    def setUp(self):
        super().setUp()
        self._saved_env = os.environ.copy()
        for key in list(os.environ):
            if key.startswith("TUTOR_ENGINE_"):
                del os.environ[key]
        reset_engine_config_for_testing()

    def tearDown(self):
        os.environ.clear()
        os.environ.update(self._saved_env)
        reset_engine_config_for_testing()
        super().tearDown()

    def _write_yaml(self, body: str) -> str:
        fd, path = tempfile.mkstemp(suffix=".yaml")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(body)
        self.addCleanup(os.remove, path)
        return path


class TestEngineConfig(_EnvMixin, unittest.TestCase):
    def test_defaults(self):
        config = get_engine_config()
        self.assertEqual(config.persona_activation_threshold, 0.6)
        self.assertEqual(config.persona_override_threshold, 1.5)
        self.assertEqual(config.conviction_trigger_threshold, 0.6)
        self.assertEqual(config.max_tracked_users, 1000)

    def test_singleton_until_reset(self):
        first = get_engine_config()
        self.assertIs(first, get_engine_config())
        os.environ["TUTOR_ENGINE_FLOW_WINDOW"] = "4"
        self.assertEqual(get_engine_config().flow_window, 10)
        reset_engine_config_for_testing()
        self.assertEqual(get_engine_config().flow_window, 4)

    def test_env_override(self):
        os.environ["TUTOR_ENGINE_PERSONA_ACTIVATION_THRESHOLD"] = "0.75"
        os.environ["TUTOR_ENGINE_HISTORY_MAX"] = " 12 "
        config = load_engine_config()
        self.assertEqual(config.persona_activation_threshold, 0.75)
        self.assertEqual(config.history_max, 12)

    def test_blank_env_value_is_ignored(self):
        os.environ["TUTOR_ENGINE_HISTORY_MAX"] = "  "
        self.assertEqual(load_engine_config().history_max, 20)

    def test_yaml_file_and_env_precedence(self):
        path = self._write_yaml("engine:\n  flow_window: 6\n  event_log_limit: 4\n")
        os.environ[CONFIG_FILE_ENV] = path
        os.environ["TUTOR_ENGINE_EVENT_LOG_LIMIT"] = "8"
        config = load_engine_config()
        self.assertEqual(config.flow_window, 6)
        self.assertEqual(config.event_log_limit, 8)

    def test_flat_yaml_mapping(self):
        path = self._write_yaml("conviction_trigger_threshold: 0.9\n")
        self.assertEqual(load_engine_config(path).conviction_trigger_threshold, 0.9)

    def test_unknown_keys_are_ignored(self):
        path = self._write_yaml("flow_window: 5\nlegacy_option: true\n")
        self.assertEqual(load_engine_config(path).flow_window, 5)

    def test_invalid_value_raises(self):
        os.environ["TUTOR_ENGINE_PERSONA_ACTIVATION_THRESHOLD"] = "1.5"
        with self.assertRaises(EngineConfigError):
            load_engine_config()

    def test_missing_file_raises(self):
        with self.assertRaises(EngineConfigError):
            load_engine_config("/nonexistent/tutor-engine.yaml")

    def test_non_mapping_file_raises(self):
        path = self._write_yaml("- just\n- a list\n")
        with self.assertRaises(EngineConfigError):
            load_engine_config(path)

    def test_components_fall_back_to_singleton(self):
        os.environ["TUTOR_ENGINE_PERSONA_MIN_FEEDBACK_SAMPLES"] = "1"
        reset_engine_config_for_testing()
        selector = PersonaSelector()
        selector.record_feedback("u1", PersonaId.SOCRATIC, FeedbackPolarity.POSITIVE)
        self.assertEqual(selector.preferred_persona("u1"), PersonaId.SOCRATIC)


if __name__ == "__main__":
    unittest.main()
