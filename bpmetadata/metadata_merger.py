import copy
import logging

from .metadata import BlueprintInterface


def merge_existing_connections(new_interfaces: BlueprintInterface, existing_interfaces: BlueprintInterface):
    """
    Copy curated connections from the existing interfaces onto the new ones.

    Connections are never produced by extraction, so a non-empty existing
    value always replaces the new one. Unknown names are ignored.
    """
    for new_items, existing_items in ((new_interfaces.variables, existing_interfaces.variables),
                                      (new_interfaces.outputs, existing_interfaces.outputs)):
        existing = {item.name: item for item in existing_items}
        for item in new_items:
            if item.name not in existing:
                continue
            if len(existing[item.name].connections) == 0:
                continue

            item.connections = copy.deepcopy(existing[item.name].connections)
            logging.info(f"Preserved {len(item.connections)} connections for {item.name}")

def merge_existing_output_types(new_interfaces: BlueprintInterface, existing_interfaces: BlueprintInterface):
    existing = {output.name: output for output in existing_interfaces.outputs}
    for output in new_interfaces.outputs:
        # a type resolved in this run beats the stored one
        if output.type is not None:
            continue
        if output.name not in existing or existing[output.name].type is None:
            continue

        output.type = copy.deepcopy(existing[output.name].type)
