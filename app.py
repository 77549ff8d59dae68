from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

import flet as ft
import flet_video as ftv

from clipcut.config import ConfigStore
from clipcut.editor import EditorSession
from clipcut.engine import FFmpegEngine, probe_media, resolve_ffmpeg_bins
from clipcut.errors import ClipCutError, EngineError, FFmpegNotFound
from clipcut.model import MediaAsset, format_time, parse_time
from clipcut.pipeline import PipelineState, TranscodePipeline
from clipcut.resources import ObjectUrlRegistry
from clipcut.shortcuts import ACTION_MARK_END, ACTION_MARK_START, ShortcutController, shortcut_legend
from clipcut.thumbnails import THUMB_HEIGHT, THUMB_WIDTH, FFmpegFrameGrabber

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("clipcut")


def _duration_to_sec(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    if hasattr(raw, "in_milliseconds"):
        return max(0.0, float(raw.in_milliseconds) / 1000.0)
    try:
        # Older flet_video returns plain milliseconds.
        return max(0.0, float(raw) / 1000.0)
    except (TypeError, ValueError):
        return None


class FletVideoPlayer:
    """PlaybackElement backed by a flet_video Video control."""

    def __init__(self, video: ftv.Video) -> None:
        self.video = video

    async def current_position(self) -> float:
        return _duration_to_sec(await self.video.get_current_position()) or 0.0


def main(page: ft.Page) -> None:
    page.title = "ClipCut"
    _platform = str(getattr(page, "platform", "") or "").lower()
    is_web = bool(getattr(page, "web", False)) or ("web" in _platform)
    if not is_web:
        page.window.width = 960
        page.window.height = 820
    page.theme_mode = ft.ThemeMode.DARK
    page.padding = 16
    page.scroll = ft.ScrollMode.AUTO

    root = Path(__file__).resolve().parent
    cfg = ConfigStore.default()
    resources = ObjectUrlRegistry(root / ".cache" / "objects")

    # One engine per process, created here and handed to the pipeline.
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    try:
        ffmpeg_path, ffprobe_path = resolve_ffmpeg_bins(root, cfg.ffmpeg_dir())
    except FFmpegNotFound as ex:
        log.error("%s", ex)
    engine = FFmpegEngine(ffmpeg_path or "ffmpeg", work_dir=root / ".cache" / "engine")
    pipeline = TranscodePipeline(engine, resources)

    def _probe_duration(path: str) -> float:
        return probe_media(ffprobe_path or "ffprobe", path).duration

    editor = EditorSession(
        pipeline,
        resources,
        probe_duration=_probe_duration,
        frame_source_factory=lambda asset: FFmpegFrameGrabber(ffmpeg_path or "ffmpeg", asset.path),
        auto_add=cfg.auto_add(),
        thumbnail_count=cfg.thumbnail_count(),
    )

    # ---------- helpers ----------
    def snack(msg: str) -> None:
        page.show_dialog(ft.SnackBar(ft.Text(msg)))

    def show_error(ex: ClipCutError) -> None:
        error_text.value = ex.user_message
        error_text.visible = True
        page.update()

    def clear_error() -> None:
        error_text.value = ""
        error_text.visible = False

    def _show_shortcuts_dialog() -> None:
        rows: List[ft.Control] = [
            ft.Row([ft.Text(k, width=120, weight=ft.FontWeight.BOLD), ft.Text(v)])
            for k, v in shortcut_legend()
        ]
        rows.append(ft.Divider())
        rows.append(
            ft.Text(
                "Add several clips, then press Cut & Join to merge them into one video.\n"
                "With auto-add on, setting the end adds the clip right away.",
                size=12,
                color=ft.Colors.WHITE70,
            )
        )
        dlg = ft.AlertDialog(
            modal=True,
            title=ft.Text("How to use"),
            content=ft.Container(width=480, content=ft.Column(rows, tight=True, spacing=6)),
            actions=[ft.TextButton("Close", on_click=lambda _e: page.pop_dialog())],
        )
        page.show_dialog(dlg)

    def sync_after_action() -> None:
        pending = editor.media.pending
        start_field.value = "" if pending.start is None else str(int(pending.start))
        end_field.value = "" if pending.end is None else str(int(pending.end))
        refresh()

    controller = ShortcutController(
        editor,
        on_message=snack,
        on_help=_show_shortcuts_dialog,
        on_done=sync_after_action,
    )

    # ---------- controls ----------
    file_picker = ft.FilePicker()
    file_name = ft.Text("", visible=False, no_wrap=True, width=320)
    video_slot = ft.Container(height=320, bgcolor=ft.Colors.BLACK, border_radius=12, visible=False)
    thumbs_row = ft.Row([], spacing=4, scroll=ft.ScrollMode.AUTO)
    range_text = ft.Text("", weight=ft.FontWeight.W_500)
    start_field = ft.TextField(label="Start", width=120, dense=True)
    end_field = ft.TextField(label="End", width=120, dense=True)
    auto_add_sw = ft.Switch(label="Auto-add clip on end", value=editor.auto_add)
    clips_title = ft.Text("Clips", weight=ft.FontWeight.BOLD)
    clip_list = ft.Column([], spacing=4)
    status_text = ft.Text("Loading video engine...", color=ft.Colors.WHITE70)
    error_text = ft.Text("", color=ft.Colors.RED_300, visible=False)
    output_slot = ft.Container(height=320, bgcolor=ft.Colors.BLACK, border_radius=12, visible=False)
    save_btn = ft.OutlinedButton("Download", icon=ft.Icons.DOWNLOAD, visible=False)
    add_btn = ft.FilledButton("Add clip [A]", icon=ft.Icons.ADD)
    cut_btn = ft.FilledButton("Cut & Join", icon=ft.Icons.CONTENT_CUT)
    mark_start_btn = ft.OutlinedButton("Start here [J]")
    mark_end_btn = ft.OutlinedButton("End here [K]")
    editor_panel = ft.Column([], visible=False, spacing=10)

    def refresh() -> None:
        media = editor.media
        pending = media.pending
        range_text.value = (
            f"Current range: {format_time(pending.start or 0)} ~ {format_time(pending.end or 0)}"
        )

        clips_title.value = (
            f"Clips ({len(media.clips)}, total {format_time(media.clips.total_duration())})" if len(media.clips) else "Clips"
        )
        clip_list.controls.clear()
        for idx, clip in enumerate(media.clips):
            clip_list.controls.append(
                ft.Row(
                    [
                        ft.Text(f"{idx + 1}. {format_time(clip.start)} ~ {format_time(clip.end)}", expand=True),
                        ft.IconButton(
                            ft.Icons.DELETE_OUTLINE,
                            tooltip="Remove clip",
                            icon_color=ft.Colors.RED_300,
                            on_click=lambda _e, i=idx: remove_click(i),
                        ),
                    ]
                )
            )

        thumbs_row.controls = [
            ft.Image(src=t.url, width=THUMB_WIDTH, height=THUMB_HEIGHT, fit=ft.ImageFit.COVER, border_radius=4)
            for t in media.thumbnails
        ]

        add_btn.disabled = not editor.can_add_pending()
        cut_btn.disabled = not editor.can_cut()
        editor_panel.visible = media.has_asset

        state = pipeline.state
        if state == PipelineState.UNINITIALIZED:
            status_text.value = "Video engine unavailable" if ffmpeg_path is None else "Loading video engine..."
        elif state == PipelineState.INITIALIZING:
            status_text.value = "Loading video engine..."
        elif state == PipelineState.EXTRACTING and pipeline.progress:
            i, n = pipeline.progress
            status_text.value = f"Processing... extracting clip {i} of {n}"
        elif state == PipelineState.CONCATENATING:
            status_text.value = "Processing... joining clips"
        else:
            status_text.value = ""

        out = editor.output
        if out is not None and getattr(output_slot, "data", None) != out.id:
            output_slot.data = out.id
            output_slot.content = ftv.Video(
                expand=True,
                playlist=[ftv.VideoMedia(out.url)],
                autoplay=False,
                show_controls=True,
            )
        elif out is None:
            output_slot.data = None
            output_slot.content = None
        output_slot.visible = out is not None
        save_btn.visible = out is not None
        page.update()

    pipeline.on_change = lambda _state: refresh()

    def _pending_from_fields() -> None:
        editor.set_pending(parse_time(start_field.value), parse_time(end_field.value))

    # ---------- actions ----------
    def pick_click(_e):
        async def _pick() -> None:
            picked = await file_picker.pick_files(
                allow_multiple=False,
                file_type=ft.FilePickerFileType.CUSTOM,
                allowed_extensions=["mp4"],
            )
            if not picked or not picked[0].path:
                return
            asset = MediaAsset.from_path(picked[0].path)
            clear_error()
            start_field.value = ""
            end_field.value = ""
            try:
                preview = await editor.open(asset)
            except ClipCutError as ex:
                log.warning("open failed: %s", ex)
                video_slot.visible = False
                editor.attach_player(None)
                show_error(ex)
                refresh()
                return

            file_name.value = asset.name
            file_name.visible = True
            video = ftv.Video(
                expand=True,
                playlist=[ftv.VideoMedia(preview.url)],
                autoplay=False,
                show_controls=True,
            )
            video_slot.content = video
            video_slot.visible = True
            editor.attach_player(FletVideoPlayer(video))
            refresh()

            try:
                await editor.refresh_thumbnails()
            except (ClipCutError, EngineError) as ex:
                log.warning("thumbnails skipped: %s", ex)
            refresh()

        page.run_task(_pick)

    def _run_shortcut(action: str) -> None:
        async def _do() -> None:
            await controller.dispatch(action)
            sync_after_action()

        page.run_task(_do)

    def mark_start_click(_e):
        _run_shortcut(ACTION_MARK_START)

    def mark_end_click(_e):
        _run_shortcut(ACTION_MARK_END)

    def add_click(_e=None):
        _pending_from_fields()
        try:
            editor.add_pending()
            clear_error()
        except ClipCutError as ex:
            show_error(ex)
        refresh()

    def remove_click(idx: int) -> None:
        try:
            editor.remove_clip(idx)
        except ClipCutError as ex:
            show_error(ex)
        refresh()

    def cut_click(_e):
        async def _do() -> None:
            clear_error()
            try:
                await editor.cut()
            except ClipCutError as ex:
                show_error(ex)
            refresh()

        page.run_task(_do)

    def save_click(_e):
        async def _save() -> None:
            out = editor.output
            if out is None:
                return
            dest = await file_picker.save_file(
                file_name="output.mp4",
                initial_directory=cfg.last_export_dir(),
                file_type=ft.FilePickerFileType.CUSTOM,
                allowed_extensions=["mp4"],
            )
            if not dest:
                return
            dest = str(Path(dest).with_suffix(".mp4"))
            try:
                out.save_as(dest)
            except (OSError, ValueError) as ex:
                log.exception("save failed: %s", ex)
                snack(f"Save failed: {ex}")
                return
            cfg.set_last_export_dir(dest)
            snack(f"Saved: {Path(dest).name}")

        page.run_task(_save)

    def on_auto_add_change(e: ft.ControlEvent) -> None:
        editor.auto_add = bool(e.control.value)
        cfg.set_auto_add(editor.auto_add)

    def on_field_focus(_e) -> None:
        controller.typing_focus = True

    def on_field_blur(_e) -> None:
        controller.typing_focus = False
        _pending_from_fields()
        refresh()

    for f in (start_field, end_field):
        f.on_focus = on_field_focus
        f.on_blur = on_field_blur
        f.on_change = lambda _e: (_pending_from_fields(), refresh())

    mark_start_btn.on_click = mark_start_click
    mark_end_btn.on_click = mark_end_click
    add_btn.on_click = add_click
    cut_btn.on_click = cut_click
    save_btn.on_click = save_click
    auto_add_sw.on_change = on_auto_add_change

    controller.attach(page)

    def on_disconnect(_e) -> None:
        controller.detach()
        editor.close()

    page.on_disconnect = on_disconnect

    # ---------- layout ----------
    editor_panel.controls = [
        video_slot,
        thumbs_row,
        range_text,
        ft.Row([start_field, end_field, mark_start_btn, mark_end_btn], wrap=True),
        auto_add_sw,
        clips_title,
        clip_list,
        ft.Row([add_btn, cut_btn], alignment=ft.MainAxisAlignment.CENTER),
    ]
    page.add(
        ft.Column(
            [
                ft.Row(
                    [
                        ft.Text("Video Cutter (mp4)", size=24, weight=ft.FontWeight.BOLD, expand=True),
                        ft.IconButton(
                            ft.Icons.HELP_OUTLINE,
                            tooltip="Shortcuts",
                            on_click=lambda _e: _show_shortcuts_dialog(),
                        ),
                    ]
                ),
                ft.Row(
                    [
                        ft.ElevatedButton("Choose file", icon=ft.Icons.FOLDER_OPEN, on_click=pick_click),
                        file_name,
                    ]
                ),
                editor_panel,
                status_text,
                error_text,
                output_slot,
                ft.Row([save_btn], alignment=ft.MainAxisAlignment.CENTER),
            ],
            spacing=12,
        )
    )
    refresh()

    async def _init_engine() -> None:
        if ffmpeg_path is None:
            snack("ffmpeg not found. Put ffmpeg/ffprobe in ./bin or on PATH.")
            refresh()
            return
        try:
            await pipeline.initialize()
        except ClipCutError as ex:
            show_error(ex)
        refresh()

    page.run_task(_init_engine)


if __name__ == "__main__":
    ft.app(target=main)
