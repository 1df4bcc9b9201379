# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import errno
import fcntl
import functools
import logging
import os
import typing

logger = logging.getLogger('sriovfs.Host-kmsg')

KERN_ERR = 3


class KernelMessage(typing.NamedTuple):
    level: int
    text: str


class LogDecorators():
    """Read and parse kernel log buffer around sysfs writes.
    https://www.kernel.org/doc/Documentation/ABI/testing/dev-kmsg
    """
    @staticmethod
    def read_messages(fd: int) -> typing.List[str]:
        buf_size = 8192
        kmsgs = []
        while True:
            try:
                kmsg = os.read(fd, buf_size)
            except OSError as exc:
                if exc.errno == errno.EAGAIN:
                    break

                if exc.errno == errno.EPIPE:
                    # Record overwritten in the ring buffer, next read returns the following one
                    continue
                raise

            if not kmsg:
                break
            kmsgs.append(kmsg.decode('utf-8', errors='replace'))
        return kmsgs

    @staticmethod
    def parse_messages(kmsgs: typing.List[str]) -> typing.List[KernelMessage]:
        parsed: typing.List[KernelMessage] = []
        for chunk in kmsgs:
            for msg in chunk.splitlines():
                # Continuation lines (dictionary key=value) start with a space
                if not msg or msg.startswith(' ') or ';' not in msg:
                    continue

                header, human = msg.split(';', 1)
                # Get priority/facility field (seq, time, other unused for now)
                prio_fac = header.split(',', 1)[0]
                try:
                    level = int(prio_fac) & 0x7 # Syslog priority
                except ValueError:
                    logger.debug("Skip malformed kmsg record: %s", msg)
                    continue

                if level <= KERN_ERR:
                    logger.error("[Error: %s]: %s", level, human.strip())
                else:
                    logger.debug("%s", human.strip())

                parsed.append(KernelMessage(level, human.strip()))
        return parsed

    @classmethod
    def parse_kmsg(cls, func: typing.Callable) -> typing.Callable:
        """Log kernel messages emitted while a decorated method runs.
        Enabled only if the instance has 'kmsg_path' set, otherwise the call passes through.
        """
        @functools.wraps(func)
        def parse_wrapper(self: typing.Any, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
            kmsg_path = getattr(self, 'kmsg_path', None)
            if kmsg_path is None:
                return func(self, *args, **kwargs)

            try:
                f = open(kmsg_path, 'rb')
            except OSError as exc:
                logger.warning("Kernel log %s not available: %s", kmsg_path, exc)
                return func(self, *args, **kwargs)

            with f:
                fd = f.fileno()
                os.lseek(fd, 0, os.SEEK_END)
                flags = fcntl.fcntl(fd, fcntl.F_GETFL)
                fcntl.fcntl(fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)

                try:
                    # Execute actual function
                    return func(self, *args, **kwargs)
                finally:
                    try:
                        cls.parse_messages(cls.read_messages(fd))
                    except OSError as exc:
                        logger.warning("Unable to read kernel log %s: %s", kmsg_path, exc)
        return parse_wrapper
