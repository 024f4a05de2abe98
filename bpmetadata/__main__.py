import argparse
import logging
import sys

from bpmetadata.metadata_generator import generate, write
from bpmetadata.output_type_resolver import TerraformStateRetriever
from bpmetadata.utils import LOG_LEVEL, MetadataError

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog='bpmetadata', description='Generate blueprint metadata from a Terraform module.')
    parser.add_argument('path', help='path of the module to describe')
    parser.add_argument('--blueprint-root', default=None, help='root of the blueprint when path is a submodule')
    parser.add_argument('--update-output-types', action='store_true', help='resolve output types from terraform state')
    args = parser.parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL)

    retriever = TerraformStateRetriever() if args.update_output_types else None
    try:
        metadata = generate(args.path, args.blueprint_root, retriever)
        write(metadata, args.path)
    except MetadataError as e:
        logging.error(f"Failed to generate metadata for {args.path}: {e}")
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
