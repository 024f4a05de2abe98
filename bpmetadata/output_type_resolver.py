import json
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from .metadata import BlueprintInterface
from .utils import STATE_FILE_NAME, TERRAFORM_BINARY, ParseError, StateRetrievalError


def run_terraform_command(args: List[str], cwd: str) -> Tuple[int, bytes, bytes]:
    cmd = [TERRAFORM_BINARY, f"-chdir={cwd}"] + args
    logging.info(f"Running: {' '.join(cmd)}")
    try:
        proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=False)
    except OSError as e:
        logging.error(f"Error running terraform command '{' '.join(cmd)}': {e}")
        return -1, b"", str(e).encode()
    return proc.returncode, proc.stdout, proc.stderr


class StateRetriever(ABC):
    @abstractmethod
    def retrieve(self, module_path: str) -> bytes:
        """Returns the serialized Terraform state of the module."""


class TerraformStateRetriever(StateRetriever):
    def retrieve(self, module_path: str) -> bytes:
        for args in (['init', '-input=false', '-no-color'], ['show', '-json', '-no-color']):
            returncode, stdout, stderr = run_terraform_command(args, module_path)
            if returncode != 0:
                raise StateRetrievalError(f"terraform {args[0]} failed for {module_path}: {stderr.decode(errors='replace').strip()}")
        return stdout


class FileStateRetriever(StateRetriever):
    def __init__(self, file_name: str = STATE_FILE_NAME):
        self.file_name = file_name

    def retrieve(self, module_path: str) -> bytes:
        with open(os.path.join(module_path, self.file_name), 'rb') as f:
            return f.read()


def infer_type(value: Any) -> Any:
    if isinstance(value, bool):
        return 'bool'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, list):
        return ['tuple', [infer_type(item) for item in value]]
    if isinstance(value, dict):
        return ['object', {k: infer_type(v) for k, v in value.items()}]
    return 'dynamic'

def state_outputs(state: bytes) -> Dict[str, dict]:
    try:
        data = json.loads(state)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Error parsing Terraform state: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Terraform state is not a JSON object")

    # raw state files keep outputs at the top, `terraform show -json` nests them under values
    outputs = data.get('outputs')
    if outputs is None:
        outputs = (data.get('values') or {}).get('outputs')
    if outputs is None:
        return {}
    if not isinstance(outputs, dict):
        raise ParseError("Terraform state outputs are not a JSON object")
    return outputs

def output_type(state_output: Any) -> Any:
    if not isinstance(state_output, dict):
        return infer_type(state_output)
    if state_output.get('type') is not None:
        return state_output['type']
    return infer_type(state_output.get('value'))

def update_output_types(bp_path: str, interfaces: BlueprintInterface, retriever: StateRetriever):
    try:
        state = retriever.retrieve(bp_path)
    except StateRetrievalError:
        raise
    except Exception as e:
        raise StateRetrievalError(f"Error retrieving Terraform state for {bp_path}: {e}") from e

    outputs = state_outputs(state)
    for output in interfaces.outputs:
        if output.type is not None:
            continue
        if output.name not in outputs:
            logging.info(f"Output {output.name} not found in state")
            continue
        output.type = output_type(outputs[output.name])
