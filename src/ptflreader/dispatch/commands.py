"""
Interactive command loop for PTFL Reader.

One command per line, whitespace separated. ``combine`` and multi-entry
``output`` read extra lines from a sub-prompt until an empty line. Any
grammar error prints the command's usage and the loop carries on.
"""

import argparse
import math
import os
import sys

from ptflreader.errors import CatalogError, CommandGrammarError, FormatError, PtflError
from ptflreader.models import format_key
from ptflreader.parse.ptfl_parser import PtflParser
from ptflreader.pipeline import (
    RenderJob, assign_hues, entry_output_path, jobs_for_entries, render_batch, render_to_file,
)
from ptflreader.render.backends import get_backend
from ptflreader.render.raster import RasterBackend
from ptflreader.tracer import get_tracer

USAGE = {
    "load": "load name1 [name2 ...]\n    parse each scan file into the catalog",
    "list": "list\n    print every catalog key with its sample count",
    "show": "show label seq\n    report whether an entry exists and its sample count",
    "combine": (
        "combine target_label target_seq\n"
        "    then one 'label seq' per line, empty line to finish;\n"
        "    merges the listed entries, sorted by angle then range"
    ),
    "output": (
        "output [--png|--svg] [--scale S] [--clip P] [--lightness L] [--help] entry_label entry_seq [hue]\n"
        "output [options] entry_label * [hue]\n"
        "output [options] output_file\n"
        "    then one 'label seq [hue]' per line, empty line to finish\n"
        "    --png (default) / --svg   select the image format\n"
        "    --scale S                 pixels per meter, default 1000\n"
        "    --clip P                  half canvas extent in meters, default 2\n"
        "    --lightness L             lightness percent, default 50"
    ),
    "tev": "tev label seq\n    render an entry and open it in the live previewer",
    "help": "help\n    print this message",
    "exit": "exit\n    leave the program",
}


def general_usage():
    return "Commands:\n" + "\n".join(f"  {text}" for text in USAGE.values())


def parse_key(label, sequence, usage):
    try:
        seq = int(sequence)
    except ValueError:
        raise CommandGrammarError(f"sequence must be an integer, got {sequence!r}", usage) from None
    if seq < 0:
        raise CommandGrammarError(f"sequence must not be negative, got {seq}", usage)
    return (label, seq)


def parse_hue(text, usage):
    try:
        hue = float(text)
    except ValueError:
        raise CommandGrammarError(f"hue must be a number, got {text!r}", usage) from None
    if not math.isfinite(hue):
        raise CommandGrammarError(f"hue must be finite, got {text!r}", usage)
    return hue % 360.0


def _positive_float(text):
    value = float(text)
    if not (math.isfinite(value) and value > 0):
        raise ValueError(text)
    return value


def _percent(text):
    value = float(text)
    if not 0.0 <= value <= 100.0:
        raise ValueError(text)
    return value


class CommandArgumentParser(argparse.ArgumentParser):
    """argparse that raises instead of exiting the process."""

    def error(self, message):
        raise CommandGrammarError(message, USAGE["output"])


def build_output_parser(config):
    parser = CommandArgumentParser(prog="output", add_help=False, allow_abbrev=False)
    backend = parser.add_mutually_exclusive_group()
    backend.add_argument("--png", dest="backend", action="store_const", const="png")
    backend.add_argument("--svg", dest="backend", action="store_const", const="svg")
    parser.add_argument("--scale", type=_positive_float, default=config.render.scale)
    parser.add_argument("--clip", type=_positive_float, default=config.render.clip)
    parser.add_argument("--lightness", type=_percent, default=config.render.lightness)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("targets", nargs="*")
    parser.set_defaults(backend=config.render.backend)
    return parser


class CommandDispatcher:
    """
    Synchronous read-dispatch-print loop over one catalog and one previewer.

    Args:
        store: EntryStore shared by every command
        bridge: PreviewerBridge used by ``tev``
        config: AppConfig
        parser: PtflParser, created when omitted
        stdin / stdout: line source and result sink
        prompt: print prompts before each read
    """

    def __init__(self, store, bridge, config, parser=None, stdin=None, stdout=None, prompt=True):
        self.store = store
        self.bridge = bridge
        self.config = config
        self.parser = parser or PtflParser()
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.prompt = prompt
        self.output_parser = build_output_parser(config)
        self.commands = {
            "load": self.cmd_load,
            "list": self.cmd_list,
            "show": self.cmd_show,
            "combine": self.cmd_combine,
            "output": self.cmd_output,
            "tev": self.cmd_tev,
            "help": self.cmd_help,
            "exit": self.cmd_exit,
        }

    def say(self, message=""):
        print(message, file=self.stdout)
        self.stdout.flush()

    def read_line(self, prompt_text="> "):
        """Next input line without its newline, or None at end of input."""
        if self.prompt:
            self.stdout.write(prompt_text)
            self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def read_block(self):
        """Sub-prompt lines up to an empty line (or end of input)."""
        lines = []
        while True:
            line = self.read_line("... ")
            if line is None or not line.strip():
                return lines
            lines.append(line)

    def run(self):
        """Loop until ``exit`` or end of input."""
        try:
            while True:
                line = self.read_line()
                if line is None:
                    break
                if not self.dispatch(line):
                    break
        finally:
            self.bridge.close()

    def dispatch(self, line):
        """
        Run one command line.

        Returns False when the loop should stop.
        """
        tokens = line.split()
        if not tokens:
            return True

        verb, args = tokens[0], tokens[1:]
        handler = self.commands.get(verb)
        if handler is None:
            self.say(f"Unknown command: {verb}")
            self.say(general_usage())
            return True

        try:
            return handler(args) is not False
        except CommandGrammarError as e:
            self.say(f"Error: {e}")
            self.say(f"Usage: {e.usage or USAGE[verb]}")
        except (PtflError, OSError) as e:
            get_tracer().event(f"{verb} failed: {e}", level="ERROR")
            self.say(f"Error: {e}")
        return True

    def cmd_load(self, args):
        if not args:
            raise CommandGrammarError("expected at least one file", USAGE["load"])
        for path in args:
            self.load_file(path)

    def load_file(self, path):
        """Parse one file, renewing the parser on any failure."""
        tracer = get_tracer()
        try:
            count = self.parser.parse(path, self.store)
        except PtflError as e:
            self.say(f"Error happened parsing file {path}:")
            self.say(f"\t{e}")
            self.parser.renew()
            return 0

        if not self.parser.at_block_boundary:
            error = FormatError(
                f"file ended inside a block, {self.parser.state.remaining} sample lines missing; "
                f"the partial block was discarded",
                path=path,
            )
            tracer.event(str(error), level="ERROR")
            self.say(f"Error happened parsing file {path}:")
            self.say(f"\t{error}")
            self.parser.renew()
        self.say(f"Read {count} from {path}.")
        self.say(f"Currently {len(self.store)} entries.")
        return count

    def cmd_list(self, args):
        if args:
            raise CommandGrammarError("list takes no arguments", USAGE["list"])
        if len(self.store) == 0:
            self.say("Catalog is empty.")
            return
        for key, entry in self.store.iterate():
            self.say(f"{format_key(key)}: {len(entry)} samples")

    def cmd_show(self, args):
        if len(args) != 2:
            raise CommandGrammarError("expected label and sequence", USAGE["show"])
        key = parse_key(args[0], args[1], USAGE["show"])
        entry = self.store.get(key)
        if entry is None:
            self.say(f"{format_key(key)}: not found")
        else:
            self.say(f"{format_key(key)}: {len(entry)} samples")

    def cmd_combine(self, args):
        if len(args) != 2:
            raise CommandGrammarError("expected target label and sequence", USAGE["combine"])
        target = parse_key(args[0], args[1], USAGE["combine"])

        sources = []
        errors = []
        for line in self.read_block():
            fields = line.split()
            try:
                if len(fields) != 2:
                    raise CommandGrammarError("expected 'label seq'", USAGE["combine"])
                sources.append(parse_key(fields[0], fields[1], USAGE["combine"]))
            except CommandGrammarError as e:
                errors.append((line, e))
        self._reject_block(errors, USAGE["combine"])

        entry = self.store.combine(target, sources)
        self.say(f"Combined {len(sources)} entries into {format_key(target)} ({len(entry)} samples).")

    def cmd_output(self, args):
        options = self.output_parser.parse_args(args)
        if options.help:
            self.say(f"Usage: {USAGE['output']}")
            return

        backend = get_backend(options.backend)
        targets = options.targets
        usage = USAGE["output"]

        if len(targets) == 1:
            self._output_combined(targets[0], backend, options)
        elif len(targets) in (2, 3):
            hue = parse_hue(targets[2], usage) if len(targets) == 3 else None
            if targets[1] == "*":
                self._output_matching(targets[0], hue, backend, options)
            else:
                key = parse_key(targets[0], targets[1], usage)
                self._output_single(key, hue, backend, options)
        else:
            raise CommandGrammarError("expected an entry, a wildcard, or an output file", usage)

    def _reject_block(self, errors, usage):
        """Abort a sub-prompt command if any of its lines was malformed."""
        if not errors:
            return
        line, error = errors[0]
        more = f" (and {len(errors) - 1} more malformed lines)" if len(errors) > 1 else ""
        raise CommandGrammarError(f"{line!r}: {error}{more}; command aborted", usage)

    def _require(self, key):
        entry = self.store.get(key)
        if entry is None:
            raise CatalogError(f"entry {format_key(key)} not found")
        return entry

    def _output_single(self, key, hue, backend, options):
        entry = self._require(key)
        path = entry_output_path(self.config.output.out_dir, key, backend)
        render_to_file(
            [(entry, hue if hue is not None else 0.0)], path, backend,
            options.scale, options.clip, options.lightness,
        )
        self.say(f"Wrote {path}")

    def _output_matching(self, label_pattern, hue, backend, options):
        entries = self.store.match(label_pattern)
        if not entries:
            self.say(f"No entries match {label_pattern!r}.")
            return

        jobs = jobs_for_entries(entries, self.config.output.out_dir, backend, hue)
        result = render_batch(
            jobs, backend, options.scale, options.clip, options.lightness,
            workers=self.config.output.workers,
        )
        self.say(f"Rendered {len(result.written)}/{result.total} entries")
        for path in result.written:
            self.say(f"  wrote {path}")
        for path, message in result.failures:
            self.say(f"  failed {path}: {message}")

    def _output_combined(self, output_file, backend, options):
        usage = USAGE["output"]
        keys = []
        explicit_hues = []
        errors = []
        for line in self.read_block():
            fields = line.split()
            try:
                if len(fields) not in (2, 3):
                    raise CommandGrammarError("expected 'label seq [hue]'", usage)
                keys.append(parse_key(fields[0], fields[1], usage))
                explicit_hues.append(parse_hue(fields[2], usage) if len(fields) == 3 else None)
            except CommandGrammarError as e:
                errors.append((line, e))
        self._reject_block(errors, usage)

        if not keys:
            raise CommandGrammarError("no entries given", usage)

        entries = [self._require(key) for key in keys]
        hues = assign_hues(explicit_hues)
        job = RenderJob(entries=list(zip(entries, hues)), path=output_file)
        render_to_file(job.entries, job.path, backend, options.scale, options.clip, options.lightness)
        self.say(f"Wrote {len(entries)} entries to {output_file}")

    def cmd_tev(self, args):
        if len(args) != 2:
            raise CommandGrammarError("expected label and sequence", USAGE["tev"])
        key = parse_key(args[0], args[1], USAGE["tev"])
        entry = self._require(key)

        preview = self.config.preview
        self.bridge.ensure_started()

        backend = RasterBackend()
        label, sequence = key
        path = os.path.abspath(os.path.join(
            self.config.preview_dir(), backend.output_name(f"ptfl-preview-{label}-{sequence}"),
        ))
        render_to_file([(entry, preview.hue)], path, backend, preview.scale, preview.clip, preview.lightness)
        self.bridge.open_image(path)
        self.say(f"Opened {path} in the previewer.")

    def cmd_help(self, args):
        self.say(general_usage())

    def cmd_exit(self, args):
        return False
