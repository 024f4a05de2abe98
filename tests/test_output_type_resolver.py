import json
import os

import pytest

from bpmetadata.metadata import BlueprintInterface, BlueprintOutput, unmarshal_metadata
from bpmetadata.output_type_resolver import (
    FileStateRetriever,
    StateRetriever,
    TerraformStateRetriever,
    infer_type,
    update_output_types,
)
from bpmetadata.utils import ParseError, StateRetrievalError


class StaticStateRetriever(StateRetriever):
    def __init__(self, state: bytes):
        self.state = state
        self.paths = []

    def retrieve(self, module_path: str) -> bytes:
        self.paths.append(module_path)
        return self.state


class FailingStateRetriever(StateRetriever):
    def retrieve(self, module_path: str) -> bytes:
        raise RuntimeError("simulated error generating state file")


class TestUpdateOutputTypes:
    def test_update_output_types_from_state(self, tf_testdata, metadata_testdata):
        bp_path = os.path.join(tf_testdata, 'sample-module')
        interfaces = unmarshal_metadata(metadata_testdata, 'interfaces_without_output_types_metadata.yaml').spec.interfaces

        update_output_types(bp_path, interfaces, FileStateRetriever())

        assert interfaces.outputs == [
            BlueprintOutput(name='cluster_id', description='Cluster ID', type='string'),
            BlueprintOutput(name='endpoint', description='Cluster endpoint', type=['object', {'host': 'string', 'port': 'number'}]),
        ]

    def test_resolved_types_are_kept(self):
        interfaces = BlueprintInterface(outputs=[BlueprintOutput(name='cluster_id', type=['list', 'string'])])
        state = json.dumps({'outputs': {'cluster_id': {'value': 'id', 'type': 'string'}}}).encode()

        update_output_types('module', interfaces, StaticStateRetriever(state))

        assert interfaces.outputs[0].type == ['list', 'string']

    def test_show_json_layout_and_inferred_types(self):
        interfaces = BlueprintInterface(outputs=[
            BlueprintOutput(name='zones'),
            BlueprintOutput(name='labels'),
            BlueprintOutput(name='missing'),
        ])
        state = json.dumps({'values': {'outputs': {
            'zones': {'value': ['us-central1-a', 'us-central1-b']},
            'labels': {'value': {'env': 'dev', 'replicas': 3, 'public': False}},
        }}}).encode()
        retriever = StaticStateRetriever(state)

        update_output_types('module', interfaces, retriever)

        assert retriever.paths == ['module']
        assert interfaces.outputs[0].type == ['tuple', ['string', 'string']]
        assert interfaces.outputs[1].type == ['object', {'env': 'string', 'replicas': 'number', 'public': 'bool'}]
        assert interfaces.outputs[2].type is None

    def test_retriever_error(self):
        interfaces = BlueprintInterface(outputs=[BlueprintOutput(name='cluster_id')])
        with pytest.raises(StateRetrievalError):
            update_output_types('module', interfaces, FailingStateRetriever())

    @pytest.mark.parametrize("state", [b"not json", b"[1, 2]", b'{"outputs": []}'])
    def test_invalid_state(self, state):
        interfaces = BlueprintInterface(outputs=[BlueprintOutput(name='cluster_id')])
        with pytest.raises(ParseError):
            update_output_types('module', interfaces, StaticStateRetriever(state))


@pytest.mark.parametrize(
    "value,expected",
    [
        ("a", "string"),
        (True, "bool"),
        (1.5, "number"),
        ([], ["tuple", []]),
        ({"a": [1]}, ["object", {"a": ["tuple", ["number"]]}]),
        (None, "dynamic"),
    ],
)
def test_infer_type(value, expected):
    assert infer_type(value) == expected


class TestTerraformStateRetriever:
    def test_runs_init_and_show(self, monkeypatch):
        calls = []

        def fake_run(args, cwd):
            calls.append(args[0])
            return 0, b'{"values": {}}', b''

        monkeypatch.setattr('bpmetadata.output_type_resolver.run_terraform_command', fake_run)

        assert TerraformStateRetriever().retrieve('module') == b'{"values": {}}'
        assert calls == ['init', 'show']

    def test_failing_command(self, monkeypatch):
        monkeypatch.setattr(
            'bpmetadata.output_type_resolver.run_terraform_command',
            lambda args, cwd: (1, b'', b'Error: no configuration'),
        )

        with pytest.raises(StateRetrievalError, match='no configuration'):
            TerraformStateRetriever().retrieve('module')
