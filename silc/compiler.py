#!/usr/bin/env python3
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

from llvmlite import binding, ir

from .ast import Root
from .codegen import generate
from .diagnostics import CompileError, Source, VerificationError
from .functable import FunctionTable
from .lexer import Token, tokenize
from .parser import parse

logger = logging.getLogger(__name__)

# ============================================================
# Driver: lex, parse, index, lower
# ============================================================

@dataclass
class CompilerOptions:
    module_name: str = "sil_module"
    verify: bool = False
    triple: Optional[str] = None


@dataclass
class CompileResult:
    source: Source
    tokens: List[Token]
    ast: Root
    table: FunctionTable
    module: ir.Module

    @property
    def llvm_ir(self) -> str:
        return str(self.module)


def compile_source(text: str, path: str = "<input>", options: Optional[CompilerOptions] = None) -> CompileResult:
    """Run one compilation unit through every stage; the first error raises."""
    options = options or CompilerOptions()
    src = Source.from_text(text, path)

    tokens = tokenize(src)
    logger.debug("%s: %d tokens", path, len(tokens))
    root = parse(src, tokens)
    logger.debug("%s: %d top-level declarations", path, len(root.declarations))
    table = FunctionTable.build(root, src)
    module = generate(table, src, options.module_name)
    if options.triple:
        module.triple = options.triple

    if options.verify:
        verify_module(module)
    return CompileResult(src, tokens, root, table, module)


def compile_file(path: str, options: Optional[CompilerOptions] = None) -> CompileResult:
    src = Source.from_path(path)
    return compile_source(src.text, src.path, options)


def verify_module(module: ir.Module):
    """Round-trip the textual IR through LLVM and run its verifier."""
    binding.initialize_native_target()
    binding.initialize_native_asmprinter()

    llvm_ir = str(module)
    try:
        mod = binding.parse_assembly(llvm_ir)
        mod.verify()
    except RuntimeError as e:
        raise VerificationError(f"LLVM rejected the generated module: {str(e).strip()}") from e
    logger.debug("module %s verified", module.name)
    return mod

# ============================================================
# CLI
# ============================================================

USAGE = "usage: silc FILE [-o OUTPUT.ll] [--verify] [--triple TRIPLE] [-v]"


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)

    files: List[str] = []
    out: Optional[str] = None
    options = CompilerOptions()
    verbose = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-o", "--output", "--triple"):
            if i + 1 >= len(args):
                print(f"error: {arg} requires a value", file=sys.stderr)
                return 2
            if arg == "--triple":
                options.triple = args[i + 1]
            else:
                out = args[i + 1]
            i += 2
            continue
        if arg == "--verify":
            options.verify = True
        elif arg in ("-v", "--verbose"):
            verbose = True
        elif arg in ("-h", "--help"):
            print(USAGE)
            return 0
        elif arg.startswith("-"):
            print(f"error: unknown option {arg}", file=sys.stderr)
            print(USAGE, file=sys.stderr)
            return 2
        else:
            files.append(arg)
        i += 1

    if len(files) != 1:
        print("error: expected exactly one input file", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 2

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        result = compile_file(files[0], options)
    except CompileError as e:
        print(e.format(use_color=sys.stderr.isatty()), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if out is None:
        print(result.llvm_ir)
    else:
        with open(out, "w", encoding="utf-8") as f:
            f.write(result.llvm_ir)
        logger.info("wrote %s", out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
