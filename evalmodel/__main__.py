import sys
from pathlib import Path
import argparse
import time
from typing import List, Optional

import yaml

from . import FORMATS, Exporter, ExportException
from ._lib.writers import guess_format
from .model import CONTAINER_ORDER, EVALUATED_MODEL_SCHEMA, EvaluatedModel

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Re-export an evaluated model document.',
                                     prog='python3 -m evalmodel',
                                     formatter_class=argparse.ArgumentDefaultsHelpFormatter)

    parser.add_argument('PATH', help='evaluated model document, a .json, .yml or .yaml file')
    parser.add_argument('-f', '--format', choices=FORMATS, default=None,
                        help='output format, defaults to the format of the input')
    parser.add_argument('-o', '--output', default=None, help='output file, defaults to stdout')
    parser.add_argument('--order', default=None, nargs='+', metavar='CONTAINER',
                        help=f'container visitation order, among: {", ".join(CONTAINER_ORDER)}')
    parser.add_argument('--type-tags', action='store_true',
                        help='write the container name in references')
    parser.add_argument('-v', '--verbose', dest='verbosity', action='count', help='increase verbosity', )

    args = parser.parse_args(argv)
    path = Path(args.PATH)
    try:
        informat = guess_format(path)
    except ValueError as e:
        parser.error(str(e))
    outformat = args.format or informat

    t0 = time.time()
    try:
        exporter = Exporter(EVALUATED_MODEL_SCHEMA, order=args.order,
                            type_tags=args.type_tags,
                            verbosity=args.verbosity or 0,
                            outstream=sys.stderr)
        with path.open(encoding='utf-8') as stream:
            model = EvaluatedModel.read(stream, informat)
        text = exporter.dumps(model, outformat)
    except (ExportException, OSError, ValueError, yaml.YAMLError) as e:
        # json decoding errors are ValueErrors
        print(f'error: {e}', file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(text, encoding='utf-8')
    else:
        sys.stdout.write(text)

    t1 = time.time()
    exporter.msg(f'{path} re-exported in {t1-t0} seconds', thresh=1)
    return 0

if __name__ == "__main__":
    sys.exit(main())
