"""Command-line interface for the Face Framing Guide."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from faceguide.config import Settings, settings

app = typer.Typer(
    name="faceguide",
    help="📷 Face Framing Guide: live face presence, centering and lighting checks",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

QUIT_KEYS = (ord("q"), ord("Q"), 27)
SNAPSHOT_KEYS = (ord("s"), ord("S"))


def setup_logging(level: str) -> None:
    """Route library logging through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _config_with(**overrides) -> Settings:
    """Settings with CLI overrides applied (None means keep the default)."""
    update = {k: v for k, v in overrides.items() if v is not None}
    return settings.model_copy(update=update)


@app.callback()
def main(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Logging level")] = None,
):
    setup_logging(log_level or settings.log_level)


@app.command()
def run(
    camera: Annotated[Optional[str], typer.Option("--camera", "-c", help="Camera index, device path or stream URL")] = None,
    width: Annotated[Optional[int], typer.Option("--width", help="Window width")] = None,
    height: Annotated[Optional[int], typer.Option("--height", help="Window height")] = None,
    fit: Annotated[Optional[str], typer.Option("--fit", help="Fit mode: contain or cover")] = None,
    emit_json: Annotated[bool, typer.Option("--emit-json", help="Write host messages to stdout as JSON lines")] = False,
    snapshot_interval: Annotated[Optional[float], typer.Option("--snapshot-interval", help="Seconds between snapshots in host messages (0 = every frame)")] = None,
    output: Annotated[Path, typer.Option("--output", "-o", help="Directory for saved snapshots")] = Path("./snapshots"),
):
    """
    🎥 Live preview with landmark overlay and status panel

    Keys: q / Esc quit, s save a snapshot.

    Example:
        faceguide run --fit cover
        faceguide run --emit-json > messages.jsonl
    """
    import cv2

    from faceguide.pipeline import FramingPipeline
    from faceguide.presentation.overlay import LandmarkOverlay, StatusPanel, render_preview
    from faceguide.presentation.sink import HostSink, SnapshotThrottle, StatusBoard, StreamChannel
    from faceguide.vision.capture import CaptureUnavailableError
    from faceguide.vision.detector import DetectorInitError
    from faceguide.vision.mapper import DisplayGeometry

    if fit is not None and fit not in ("contain", "cover"):
        err_console.print(f"[red]Error:[/red] Unknown fit mode: {fit}")
        raise typer.Exit(1)
    for name, value in (("--width", width), ("--height", height)):
        if value is not None and value <= 0:
            err_console.print(f"[red]Error:[/red] {name} must be positive, got {value}")
            raise typer.Exit(1)
    if snapshot_interval is not None and snapshot_interval < 0:
        err_console.print(f"[red]Error:[/red] --snapshot-interval cannot be negative, got {snapshot_interval}")
        raise typer.Exit(1)

    config = _config_with(
        camera_index=camera,
        container_width=width,
        container_height=height,
        fit_mode=fit,
        snapshot_interval=snapshot_interval,
    )

    board = StatusBoard()
    sinks = [board]
    if emit_json:
        sinks.append(HostSink(StreamChannel(sys.stdout), SnapshotThrottle(config.snapshot_interval)))

    pipeline = FramingPipeline.from_settings(config, sinks=sinks)
    overlay = LandmarkOverlay(color=config.overlay_color, line_width=config.overlay_line_width)
    panel = StatusPanel()
    window = "Face Framing Guide"

    err_console.print("[bold blue]📷 Face Framing Guide[/bold blue] - Live Preview\n")

    try:
        pipeline.open()
    except (DetectorInitError, CaptureUnavailableError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        pipeline.close()
        raise typer.Exit(1)

    saved = 0
    geometry = None
    try:
        for analysis in pipeline.frames():
            frame_h, frame_w = analysis.frame.shape[:2]
            if geometry is None or (geometry.video_width, geometry.video_height) != (frame_w, frame_h):
                geometry = DisplayGeometry(
                    config.container_width, config.container_height, frame_w, frame_h, config.fit_mode
                )

            canvas = render_preview(analysis, geometry, overlay, panel, board.latest.state)
            cv2.imshow(window, canvas)

            key = cv2.waitKey(1) & 0xFF
            if key in QUIT_KEYS:
                break
            if key in SNAPSHOT_KEYS:
                output.mkdir(parents=True, exist_ok=True)
                path = output / f"snapshot_{analysis.frame_index:06d}.png"
                cv2.imwrite(str(path), analysis.frame)
                saved += 1
                err_console.print(f"[green]✓[/green] Snapshot saved to {path}")
    except CaptureUnavailableError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        pipeline.close()
        cv2.destroyAllWindows()

    err_console.print(f"\n[bold green]✅ Done![/bold green] Analyzed {pipeline.frames_analyzed} frames, saved {saved} snapshots")


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port")] = None,
    camera: Annotated[Optional[str], typer.Option("--camera", "-c", help="Camera index, device path or stream URL")] = None,
    snapshot_interval: Annotated[Optional[float], typer.Option("--snapshot-interval", help="Seconds between snapshots (0 = every frame)")] = None,
):
    """
    🌐 Serve the host channel (status, snapshot, WebSocket) with a live pipeline

    Example:
        faceguide serve --port 8000
    """
    import uvicorn

    from faceguide.api.main import create_app

    if snapshot_interval is not None and snapshot_interval < 0:
        err_console.print(f"[red]Error:[/red] --snapshot-interval cannot be negative, got {snapshot_interval}")
        raise typer.Exit(1)

    config = _config_with(camera_index=camera, snapshot_interval=snapshot_interval)
    host = host or config.api_host
    port = port or config.api_port

    console.print(f"[bold blue]🌐 Face Framing Guide[/bold blue] - Host channel on http://{host}:{port}/api/ws\n")
    uvicorn.run(create_app(config), host=host, port=port, log_level=config.log_level.lower())


@app.command()
def analyze(
    image: Annotated[Path, typer.Argument(help="Path to an image file")],
    as_json: Annotated[bool, typer.Option("--json", help="Print the host message (with snapshot) as JSON")] = False,
    overlay_path: Annotated[Optional[Path], typer.Option("--overlay", help="Write an annotated copy of the image")] = None,
):
    """
    🔍 Analyze a still image

    Example:
        faceguide analyze selfie.jpg
        faceguide analyze selfie.jpg --overlay annotated.png
    """
    import cv2

    from faceguide.pipeline import analyze_frame
    from faceguide.presentation.overlay import LandmarkOverlay, StatusPanel, render_preview, yes_no
    from faceguide.presentation.sink import build_host_message, encode_snapshot
    from faceguide.vision.detector import DetectorInitError, FaceLandmarkDetector
    from faceguide.vision.mapper import DisplayGeometry

    if not image.exists():
        console.print(f"[red]Error:[/red] Image not found: {image}")
        raise typer.Exit(1)

    frame = cv2.imread(str(image))
    if frame is None:
        console.print(f"[red]Error:[/red] Cannot decode image: {image}")
        raise typer.Exit(1)

    try:
        with FaceLandmarkDetector.from_settings(settings) as detector:
            faces = detector.detect(frame, 0)
    except DetectorInitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    analysis = analyze_frame(
        frame,
        faces,
        center_threshold=settings.center_threshold,
        lighting_threshold=settings.lighting_threshold,
    )

    if as_json:
        message = build_host_message(analysis.status, encode_snapshot(frame))
        typer.echo(json.dumps(message.to_payload()))
    else:
        table = Table(title=f"Framing check: {image.name}")
        table.add_column("Check")
        table.add_column("Result")
        table.add_row("Face Detected", yes_no(analysis.status.face_detected))
        table.add_row("Face Centered", yes_no(analysis.status.face_centered))
        table.add_row("Good Lighting", yes_no(analysis.status.lighting_good))
        brightness = "n/a" if analysis.brightness is None else f"{analysis.brightness:.1f}"
        table.add_row("Brightness", brightness)
        console.print(table)

    if overlay_path is not None:
        height, width = frame.shape[:2]
        geometry = DisplayGeometry(width, height, width, height, "contain")
        overlay = LandmarkOverlay(color=settings.overlay_color, line_width=settings.overlay_line_width)
        canvas = render_preview(analysis, geometry, overlay, StatusPanel())
        overlay_path.parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(overlay_path), canvas)
        console.print(f"[green]✓[/green] Overlay saved to {overlay_path}")


@app.command(name="download-model")
def download_model_cmd(
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Model path")] = None,
    force: Annotated[bool, typer.Option("--force", help="Download even if the file exists")] = False,
):
    """
    📥 Download the MediaPipe FaceLandmarker model

    Example:
        faceguide download-model
    """
    from urllib.error import URLError

    from faceguide.vision.detector import download_model

    target = output or settings.model_path
    if target.exists() and not force:
        console.print(f"[dim]Model already present at {target}[/dim]")
        return

    console.print(f"[blue]📥[/blue] Downloading model to {target}")
    try:
        download_model(settings.model_url, target, force=force)
    except (URLError, OSError) as e:
        console.print(f"[red]Error:[/red] Download failed: {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Model saved to {target}")


@app.command()
def version():
    """Show version information."""
    from faceguide import __version__
    console.print(f"[bold]Face Framing Guide[/bold] v{__version__}")


if __name__ == "__main__":
    app()
