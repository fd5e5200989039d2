"""Preview server for the output tree, rebuilt in place while watching."""
import asyncio
import logging
import posixpath
import signal
import stat
from pathlib import Path

import uvicorn
from starlette.applications import Starlette
from starlette.routing import Mount
from starlette.staticfiles import StaticFiles

from pagesmith.runtime.context import BuildContext
from pagesmith.runtime.watcher import watch_project

logger = logging.getLogger(__name__)


class PreviewFiles(StaticFiles):
    """Static files where '/about' serves 'about.html'."""

    async def get_response(self, path: str, scope):
        if path != "." and not posixpath.splitext(path)[1]:
            candidate = f"{path}.html"
            _, stat_result = await asyncio.to_thread(self.lookup_path, candidate)
            if stat_result is not None and stat.S_ISREG(stat_result.st_mode):
                path = candidate
        return await super().get_response(path, scope)


def create_app(dest_dir: Path) -> Starlette:
    # dev builds symlink images and vendor files out of the source tree
    files = PreviewFiles(directory=str(dest_dir), html=True, check_dir=False, follow_symlink=True)
    return Starlette(routes=[Mount("/", app=files, name="site")])


async def run_dev_server(context: BuildContext, host: str, port: int) -> None:
    """Serve the output tree and rebuild on change until interrupted."""
    shutdown_event = asyncio.Event()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown_event.set)
    except NotImplementedError:
        pass

    config = uvicorn.Config(
        create_app(context.layout.dest_dir), host=host, port=port, log_level="warning"
    )
    server = uvicorn.Server(config)
    # signals are handled above so the watcher stops too
    server.install_signal_handlers = lambda: None

    async def stop_uvicorn():
        await shutdown_event.wait()
        server.should_exit = True

    logger.info(f"Serving {context.layout.dest_dir} on http://{host}:{port}")
    async with asyncio.TaskGroup() as tg:
        tg.create_task(server.serve())
        tg.create_task(stop_uvicorn())
        tg.create_task(watch_project(context, stop_event=shutdown_event))
