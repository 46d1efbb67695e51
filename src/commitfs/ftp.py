"""FTP front end: serve a commitfs driver with pyftpdlib."""

from __future__ import annotations

import functools
import logging
import os
import stat
from typing import TYPE_CHECKING

from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.filesystems import AbstractedFS, FilesystemError
from pyftpdlib.handlers import DTPHandler, FTPHandler
from pyftpdlib.log import config_logging, logger
from pyftpdlib.servers import FTPServer

from ._fileobj import UploadFile
from .exceptions import CommitError, InvalidPathError

if TYPE_CHECKING:
    from .driver import DriverFactory, FileInfo

# Login permissions: everything except chmod (M) and mtime (T)
USER_PERMS = "elradfmw"


def _stat_result(info: FileInfo) -> os.stat_result:
    """Build the stat tuple pyftpdlib renders; uid/gid carry owner/group names."""
    st = info.info
    mode = info.mode if info.is_dir else info.mode | stat.S_IFREG
    return os.stat_result((
        mode, st.st_ino, st.st_dev, st.st_nlink,
        info.owner, info.group, st.st_size,
        st.st_atime, st.st_mtime, st.st_ctime,
    ))


def _ftp_errors(method):
    """Re-raise driver errors as errors the FTP handler turns into 550 replies."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except OSError as exc:
            # pyftpdlib formats OSError via os.strerror(errno)
            if exc.errno is None:
                raise FilesystemError(str(exc)) from exc
            raise
        except (InvalidPathError, CommitError) as exc:
            raise FilesystemError(str(exc)) from exc
    return wrapper


class DriverFS(AbstractedFS):
    """pyftpdlib filesystem whose primitives go through a commitfs driver.

    pyftpdlib hands physical paths under *root*; each is mapped back to
    its virtual path with :meth:`fs2ftp` before reaching the driver.
    """

    def __init__(self, root, cmd_channel):
        super().__init__(root, cmd_channel)
        self.driver = cmd_channel.driver_factory.new_driver()
        self.driver.init(cmd_channel)

    def _vpath(self, path: str) -> str:
        return self.fs2ftp(path)

    def _lookup(self, path: str) -> FileInfo | None:
        try:
            return self.driver.stat(self._vpath(path))
        except (OSError, InvalidPathError):
            return None

    # --- Navigation and listing ---

    @_ftp_errors
    def chdir(self, path):
        vpath = self._vpath(path)
        self.driver.change_dir(vpath)
        self.cwd = vpath

    @_ftp_errors
    def listdir(self, path):
        names = []
        self.driver.list_dir(self._vpath(path), lambda info: names.append(info.name))
        return names

    listdirinfo = listdir

    @_ftp_errors
    def stat(self, path):
        return _stat_result(self.driver.stat(self._vpath(path)))

    lstat = stat

    def isfile(self, path):
        info = self._lookup(path)
        return info is not None and not info.is_dir

    def isdir(self, path):
        info = self._lookup(path)
        return info is not None and info.is_dir

    def islink(self, path):
        return False

    def lexists(self, path):
        return self._lookup(path) is not None

    @_ftp_errors
    def getsize(self, path):
        return self.driver.stat(self._vpath(path)).size

    @_ftp_errors
    def getmtime(self, path):
        return self.driver.stat(self._vpath(path)).mtime

    def realpath(self, path):
        return path

    def get_user_by_uid(self, uid):
        return uid

    def get_group_by_gid(self, gid):
        return gid

    # --- Transfers ---

    @_ftp_errors
    def open(self, filename, mode):
        vpath = self._vpath(filename)
        if "r" in mode and "+" not in mode:
            _size, reader = self.driver.get_file(vpath, 0)
            return reader
        info = self._lookup(filename)
        if info is not None and info.is_dir:
            raise IsADirectoryError(f"A directory has the same name: {vpath}")
        return UploadFile(
            self.driver, vpath, filename,
            append="a" in mode, preload="+" in mode,
        )

    # --- Mutations ---

    @_ftp_errors
    def mkdir(self, path):
        self.driver.make_dir(self._vpath(path))

    @_ftp_errors
    def rmdir(self, path):
        self.driver.delete_dir(self._vpath(path))

    @_ftp_errors
    def remove(self, path):
        self.driver.delete_file(self._vpath(path))

    @_ftp_errors
    def rename(self, src, dst):
        self.driver.rename(self._vpath(src), self._vpath(dst))

    def chmod(self, path, mode):
        raise FilesystemError("Changing modes is not supported")

    def utime(self, path, timeval):
        raise FilesystemError("Changing modification times is not supported")

    def readlink(self, path):
        raise FilesystemError("Symbolic links are not supported")

    def mkstemp(self, suffix="", prefix="", dir=None, mode="wb"):
        raise FilesystemError("Unique file names are not supported")


class DriverDTPHandler(DTPHandler):
    """Data channel that commits completed uploads and drops aborted ones.

    The commit happens when the upload file is closed, after the data
    connection ends.  A commit failure is reported on the control
    connection as ``550`` in place of ``226``.
    """

    def close(self):
        upload = self.file_obj
        if not self._closed and isinstance(upload, UploadFile) and not upload.closed:
            if not self.transfer_finished:
                upload.discard()
            else:
                try:
                    upload.close()
                except (OSError, InvalidPathError, CommitError) as exc:
                    self._resp = (f"550 {exc}.", logger.error)
        super().close()


class DriverFTPHandler(FTPHandler):
    """FTP handler whose sessions each get a driver from ``driver_factory``."""

    abstracted_fs = DriverFS
    dtp_handler = DriverDTPHandler
    driver_factory: DriverFactory | None = None


def make_server(
    factory: DriverFactory,
    *,
    host: str = "localhost",
    port: int = 2121,
    user: str = "admin",
    password: str = "123456",
) -> FTPServer:
    """Bind an FTP server exposing *factory*'s root to one login.

    Raises:
        OSError: If the address cannot be bound.
    """
    authorizer = DummyAuthorizer()
    authorizer.add_user(user, password, factory.root, perm=USER_PERMS)
    handler = type(
        "BoundDriverFTPHandler",
        (DriverFTPHandler,),
        {"driver_factory": factory, "authorizer": authorizer},
    )
    return FTPServer((host, port), handler)


def serve(server: FTPServer, *, verbose: bool = False) -> None:
    """Run *server* until interrupted, logging through pyftpdlib's logger."""
    config_logging(level=logging.DEBUG if verbose else logging.INFO)
    try:
        server.serve_forever()
    finally:
        server.close_all()
