# Copyright 2018 Capital One Services, LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
import base64
import hashlib
import logging
import os
import tempfile
import zipfile

log = logging.getLogger('gcf_deploy.archive')

DEFAULT_IGNORES = ('.git', 'node_modules', '__pycache__')


class FunctionArchive(object):
    """Zip file of function source, as uploaded to a signed upload url.

    Files are added relative to the directory given to
    :py:meth:`add_directory`, so the function entry point ends up at
    the root of the archive.
    """

    def __init__(self):
        self._temp_archive_file = tempfile.NamedTemporaryFile(suffix='.zip')
        self._zip_file = zipfile.ZipFile(
            self._temp_archive_file, mode='w',
            compression=zipfile.ZIP_DEFLATED)
        self._closed = False

    @property
    def path(self):
        return self._temp_archive_file.name

    @property
    def size(self):
        if not self._closed:
            raise ValueError("Archive not closed, size not accurate")
        return os.stat(self._temp_archive_file.name).st_size

    def add_directory(self, path, ignore=None):
        """Add the files under ``path``, skipping vcs and dependency dirs.

        ``ignore`` is an optional callable given the archive path of a
        file, returning True to skip it.
        """
        for root, dirs, files in os.walk(path):
            dirs[:] = sorted(d for d in dirs if d not in DEFAULT_IGNORES)
            arc_prefix = os.path.relpath(root, path)
            for f in sorted(files):
                dest_path = os.path.normpath(os.path.join(arc_prefix, f))
                if ignore and ignore(dest_path):
                    continue
                self.add_file(os.path.join(root, f), dest_path)

    def add_file(self, src, dest=None):
        dest = dest or os.path.basename(src)
        with open(src, 'rb') as fp:
            contents = fp.read()
        self.add_contents(dest, contents)

    def add_contents(self, dest, contents):
        assert not self._closed, "Archive closed"
        if not isinstance(dest, zipfile.ZipInfo):
            dest = zinfo(dest)
        self._zip_file.writestr(dest, contents)

    def close(self):
        self._closed = True
        self._zip_file.close()
        log.debug(
            "Created function archive size: %0.2fmb",
            (os.path.getsize(self._temp_archive_file.name) / (
                1024.0 * 1024.0)))
        return self

    def remove(self):
        """Dispose of the temp file for garbage collection."""
        if self._temp_archive_file:
            self._temp_archive_file = None

    def get_checksum(self, encoder=base64.b64encode, hasher=hashlib.md5):
        """Return the b64 encoded md5 checksum of the archive.

        Matches the md5 reported in the ``x-goog-hash`` header of the
        uploaded object.
        """
        assert self._closed, "Archive not closed"
        with open(self._temp_archive_file.name, 'rb') as fh:
            return encoder(checksum(fh, hasher())).decode('ascii')

    def get_filenames(self):
        assert self._closed, "Archive not closed"
        with zipfile.ZipFile(self.path, mode='r') as reader:
            return [n.filename for n in reader.filelist]


def checksum(fh, hasher, blocksize=65536):
    buf = fh.read(blocksize)
    while len(buf) > 0:
        hasher.update(buf)
        buf = fh.read(blocksize)
    return hasher.digest()


def zinfo(fname):
    """Zip entry readable by the user the function executes as.

    zipfile.writestr defaults to 0600.
    """
    info = zipfile.ZipInfo(fname)
    info.external_attr = 0o644 << 16
    info.compress_type = zipfile.ZIP_DEFLATED
    return info
