import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from scrapeflow.errors import ValidationError
from scrapeflow.workflow import NodeType, default_config, get_data_model, list_node_types, parse_payload
from scrapeflow.workflow.nodes import ConditionData, DelayData
from scrapeflow.workflow.registry import input_handles, output_handles, requires_source_handle


class NodeRegistryTests(unittest.TestCase):
    def test_every_node_type_is_registered(self):
        self.assertEqual(
            [t.value for t in list_node_types()],
            ["trigger", "action", "condition", "transformation", "notification", "delay"],
        )

    def test_default_configs_match_editor_defaults(self):
        self.assertEqual(default_config("trigger"), {"triggerType": "manual", "configuration": {}})
        self.assertEqual(default_config("action"), {"actionType": "scrape", "configuration": {}})
        self.assertEqual(
            default_config("condition"),
            {"condition": "equals", "expression": "", "parameters": {}},
        )
        self.assertEqual(
            default_config("transformation"),
            {"transformationType": "map", "configuration": {}},
        )
        self.assertEqual(
            default_config("notification"),
            {"notificationType": "email", "template": "", "recipients": [], "configuration": {}},
        )
        self.assertEqual(
            default_config("delay"),
            {"delayType": "fixed", "duration": 5, "timeUnit": "minutes", "configuration": {}},
        )

    def test_default_config_for_subkind(self):
        config = default_config(NodeType.ACTION, "extract")
        self.assertEqual(config["actionType"], "extract")
        self.assertEqual(config["configuration"], {})

    def test_unknown_node_type_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            get_data_model("loop")
        self.assertIn("type", ctx.exception.errors)

    def test_condition_exposes_true_and_false_outputs(self):
        self.assertEqual(output_handles("condition"), ("true", "false"))
        self.assertTrue(requires_source_handle("condition"))
        self.assertFalse(requires_source_handle("action"))

    def test_trigger_has_no_input_handle(self):
        self.assertEqual(input_handles("trigger"), ())
        self.assertEqual(input_handles("delay"), ("input",))

    def test_parse_payload_accepts_snake_and_camel_case(self):
        camel = parse_payload("delay", {"delayType": "duration", "timeUnit": "hours"})
        snake = parse_payload("delay", {"delay_type": "duration", "time_unit": "hours"})
        self.assertIsInstance(camel, DelayData)
        self.assertEqual(camel, snake)
        self.assertEqual(camel.subkind, "duration")

    def test_parse_payload_rejects_unknown_keys(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_payload("condition", {"condition": "equals", "colour": "red"})
        self.assertIn("colour", ctx.exception.errors)

    def test_parse_payload_rejects_out_of_range_values(self):
        with self.assertRaises(ValidationError):
            parse_payload("delay", {"duration": -1})
        with self.assertRaises(ValidationError):
            parse_payload("trigger", {"triggerType": "cronjob"})

    def test_parse_payload_rejects_non_object(self):
        with self.assertRaises(ValidationError):
            parse_payload("action", ["scrape"])

    def test_parse_payload_passes_through_matching_instance(self):
        data = ConditionData(condition="contains")
        self.assertIs(parse_payload("condition", data), data)


if __name__ == "__main__":
    unittest.main()
