import logging
import numpy as np
from argparse import ArgumentParser
from .utils import expand_images
from .io import VolumeWriter, load_transform
from .space import Geometry
from .reslice import make_reslice, render

#                           --------------
#                           Common options
#                           --------------
# These options are common to all sub commands.
common = ArgumentParser(add_help=False)
common.add_argument('--images', '-i', nargs='+', required=True,
                    metavar='IMAGE', help='Input images')
common.add_argument('--output-dtype', '-dt', default=None,
                    dest='output_dtype', metavar='TYPE',
                    help='Output data type [default: same as interpolator]')
common.add_argument('--output-dir', '-o', default=None,
                    dest='output_dir', metavar='DIR',
                    help='Output directory [default: same as input]')
common.add_argument('--output-prefix', '-p', default=None,
                    dest='output_prefix', metavar='PREFIX',
                    help='Output prefix [default: resliced_]')
common.add_argument('--output-format', '-f', default=None,
                    dest='output_ext', metavar='FORMAT',
                    help='Output extension [default: same as input]')
common.add_argument('--verbose', '-v', default=False, action='store_true',
                    help='Print progress information')

#                           ------------
#                           Sub commands
#                           ------------
parser = ArgumentParser(prog='voxtools')
sub = parser.add_subparsers(dest='command')
sub.required = True
# ---
# reslice
# ---
res = sub.add_parser('reslice', parents=[common],
                     help='Reslice images onto the grid of a reference')
res.add_argument('reference', metavar='REF', help='Reference volume')
res.add_argument('--interp', default='linear',
                 choices=['nearest', 'linear', 'cubic'],
                 help='Interpolation method [default: linear]')
res.add_argument('--oversample', nargs=3, type=int, default=None,
                 metavar='N',
                 help='Oversampling factors [default: automatic]')
res.add_argument('--transform', default=None, metavar='FILE',
                 help='Text file holding a 4x4 transform from reference '
                      'to source scanner space [default: identity]')
res.add_argument('--inverse', default=False, action='store_true',
                 help='Invert the transform before applying it')
res.add_argument('--out-of-bounds', type=float, default=None,
                 dest='out_of_bounds', metavar='VALUE',
                 help='Value used outside of the input field-of-view '
                      '[default: nan, or 0 for integer data]')


def main(argv=None):

    #                           -------------
    #                           Parse options
    #                           -------------

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose
                        else logging.WARNING,
                        format='%(levelname)s: %(message)s')

    # Output options
    output_kwargs = {
        'dtype': args.output_dtype,
        'dir': args.output_dir,
        'prefix': args.output_prefix,
        'ext': args.output_ext,
    }
    if output_kwargs['dtype'] is not None:
        output_kwargs['dtype'] = np.dtype(output_kwargs['dtype'])
    if output_kwargs['ext'] and not output_kwargs['ext'].startswith('.'):
        output_kwargs['ext'] = '.' + output_kwargs['ext']
    if output_kwargs['prefix'] is None:
        output_kwargs['prefix'] = 'resliced_'
    writer = VolumeWriter(**output_kwargs)

    #                           --------------
    #                           Prepare options
    #                           --------------

    reference = Geometry.like(args.reference)
    transform = None
    if args.transform is not None:
        transform = load_transform(args.transform, inverse=args.inverse)
    reslice_kwargs = {
        'interp': args.interp,
        'oversample': args.oversample,
        'transform': transform,
        'out_of_bounds': args.out_of_bounds,
    }

    #                           --------------
    #                           Process images
    #                           --------------

    outputs = []
    for image in expand_images(args.images):
        reslicer = make_reslice(image, reference, **reslice_kwargs)
        outputs.append(writer(render(reslicer), affine=reslicer.transform(),
                              input_name=image))
    return outputs


if __name__ == '__main__':
    main()
