"""
atlaspack CLI - Command-line interface for packing texture atlases
"""

import click
import logging
import sys
from pathlib import Path
from atlaspack.config import load_config
from atlaspack.exceptions import AtlasPackerError
from atlaspack.pipeline import METADATA_FILENAME, pack_manifest
from atlaspack.texture.cropped import CroppedTexture, MaskPolicy
from atlaspack.texture.cache import TextureCache
from atlaspack.texture.utils import get_image_size


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s"
    )


def _parse_uv(ctx, param, values):
    points = []
    for value in values:
        try:
            u, v = (float(part) for part in value.split(','))
        except ValueError:
            raise click.BadParameter(f"Expected 'u,v', got '{value}'")
        points.append((u, v))
    return points


@click.group()
@click.version_option(package_name='atlas-packer')
def cli():
    """
    atlaspack - Pack polygonal texture regions into atlas pages.

    Examples:
        atlaspack pack textures.json -o out/
        atlaspack crop wall.png --uv 0,0 --uv 1,0 --uv 1,1 -o wall_crop.png
    """
    pass


@cli.command()
@click.argument('manifest')
@click.option('-o', '--output', required=True, help='Output directory for atlas pages and atlas.json')
@click.option('--config', 'config_path', default=None, help='JSON config file')
@click.option('--width', type=int, default=None, help='Atlas page width in pixels (default: 4096)')
@click.option('--height', type=int, default=None, help='Atlas page height in pixels (default: 4096)')
@click.option('--padding', type=int, default=None, help='Gap between placed regions in pixels')
@click.option('--placer', type=click.Choice(['guillotine', 'shelf']), default=None, help='Placement heuristic')
@click.option('--format', 'image_format', type=click.Choice(['png', 'jpeg', 'webp']), default=None, help='Page image format')
@click.option('--clustering/--no-clustering', default=None, help='Merge overlapping regions of the same image')
@click.option('--mask-policy', type=click.Choice([p.value for p in MaskPolicy]), default=None,
              help='Keep or clear pixels outside the polygons')
@click.option('--verbose', '-v', is_flag=True, help='Show packing progress')
def pack(manifest, output, config_path, width, height, padding, placer, image_format, clustering, mask_policy, verbose):
    """
    Pack the textures listed in a JSON manifest into atlas pages.

    Examples:
        atlaspack pack textures.json -o out/
        atlaspack pack textures.json -o out/ --width 2048 --height 2048 --format webp
        atlaspack pack textures.json -o out/ --config atlas.config.json --no-clustering
    """
    _configure_logging(verbose)
    try:
        config = load_config(
            config_path,
            width=width,
            height=height,
            padding=padding,
            placer=placer,
            image_format=image_format,
            clustering=clustering,
            mask_policy=mask_policy,
        )

        if verbose:
            click.echo(f"Packing: {manifest}")
            click.echo(f"Page size: {config.width}x{config.height}, placer: {config.placer}")

        metadata = pack_manifest(manifest, output, config)

        click.secho(
            f"✓ Success! Packed {len(metadata.textures)} textures into {len(metadata.atlases)} atlases "
            f"({Path(output) / METADATA_FILENAME})",
            fg='green'
        )

    except FileNotFoundError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except AtlasPackerError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except ValueError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except Exception as e:
        click.secho(f"Unexpected error: {e}", fg='red', err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


@cli.command()
@click.argument('image_path')
@click.option('--uv', 'uv_coords', multiple=True, required=True, callback=_parse_uv,
              help="Polygon vertex as 'u,v' (repeat, at least 3)")
@click.option('-o', '--output', required=True, help='Output image path')
@click.option('--downsample', type=float, default=1.0, help='Downsample factor between 0 and 1')
@click.option('--mask-policy', type=click.Choice([p.value for p in MaskPolicy]), default=MaskPolicy.keep.value,
              help='Keep or clear pixels outside the polygon')
@click.option('--samples', type=int, default=1, help='Coverage sub-samples per pixel axis')
@click.option('--verbose', '-v', is_flag=True, help='Show crop details')
def crop(image_path, uv_coords, output, downsample, mask_policy, samples, verbose):
    """
    Crop a single UV polygon out of an image.

    Examples:
        atlaspack crop wall.png --uv 0,0 --uv 0.5,0 --uv 0.5,0.5 -o corner.png
        atlaspack crop wall.png --uv 0,0 --uv 1,0 --uv 0,1 -o half.png --mask-policy clip --downsample 0.5
    """
    _configure_logging(verbose)
    try:
        size = get_image_size(image_path)
        texture = CroppedTexture.from_uv_coords(image_path, size, uv_coords, downsample)

        if verbose:
            click.echo(f"Cropping {texture.width}x{texture.height} at {texture.origin} from {image_path}")

        image = TextureCache().get(image_path)
        result = texture.crop(image, mask_policy=MaskPolicy(mask_policy), samples=samples)
        result.save(output)

        click.secho(f"✓ Success! Saved {result.width}x{result.height} crop to {output}", fg='green')

    except AtlasPackerError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except ValueError as e:
        click.secho(f"Error: {e}", fg='red', err=True)
        sys.exit(1)
    except Exception as e:
        click.secho(f"Unexpected error: {e}", fg='red', err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
