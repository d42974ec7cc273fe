# rsrun

`rsrun` compiles and runs Rust "scripts": single `.rs` (or `.ers`) files
that can use crates. It turns the script into a Cargo package in a cache
directory, builds it with `cargo`, and runs the binary. A built binary is
reused until the script or its generated `Cargo.toml` is newer than it.

You need a working `cargo` on your `PATH`.

## Installing

```
pip install .
```

This installs the `rsrun` command.

## Running a script

```
rsrun hello.rs
rsrun hello                   # tries hello, then hello.ers, then hello.rs
rsrun script.rs arg1 --flag   # everything after the script goes to the script
```

A leading `#!` line is ignored. A script does not need a `main` function:
if none is found, its body is wrapped in a `main` that returns `Result`, so
`?` works at the top level.

### Declaring dependencies

On the command line:

```
rsrun -d regex -d serde_json=1.0 script.rs
```

A bare name means any version (`*`). A version starting with `{` is taken as
an inline table. Giving the same name twice is an error.

As a `cargo-deps` comment on the first non-blank line of the file:

```rust
// cargo-deps: time="0.1.25", libc="0.2.5"
fn main() {}
```

Or as a `cargo` fenced code block in the doc comment (`//!`, `///` or
`/*!`) that starts the file. The first such block is merged into the
generated `Cargo.toml`:

```rust
//! ```cargo
//! [dependencies]
//! time = "0.1.25"
//! ```
fn main() {}
```

Relative `path` values of dependencies (including build, dev and target
dependencies) and `package.build` are resolved against the script's
directory, or against `--base-path` if one is given.

## Expressions and loops

```
rsrun -e '1 + 2'
cat file.txt | rsrun -l '|line| line.len()'
cat file.txt | rsrun --count -l '|line, n| format!("{n}: {line}")'
```

`-e` prints the expression's value in `{:?}` form, unless it is `()`.
`-l` calls the closure once for each line of standard input and prints each
result that is not `()`; with `--count` the closure also receives the line
number, starting at 1.

With `-e` and `-l` you can add `-x NAME` for
`#[macro_use] extern crate NAME;` and `-u FEATURE` for
`#![feature(FEATURE)]`. These are not added when `--count` is used.

## Other options

| Option | Effect |
| --- | --- |
| `-b`, `--base-path DIR` | Base path for resolving relative paths |
| `-c`, `--cargo-output` | Show cargo's output while building |
| `--debug` | Build a debug binary instead of an optimised one |
| `-f`, `--force` | Rebuild even if a cached binary is up to date |
| `--test` | Build and run the script's tests |
| `--bench` | Build and run benchmarks (uses the `nightly` toolchain) |
| `-t`, `--toolchain VERSION` | Build with the given toolchain, e.g. `nightly` |
| `-p`, `--package` | Generate the Cargo package and print its path, without building |
| `--pkg-path DIR` | Put the generated package in `DIR` instead of the cache |
| `-w`, `--wrapper CMD` | Run the binary through a wrapper, e.g. `'hyperfine --runs 100'` |
| `--clear-cache` | Empty the cache (packages and built binaries) |
| `--version` | Print the version |

Invalid combinations, such as `--test` with `--bench` or `--package` with
`--force`, are rejected.

The script sees these environment variables while it is compiled:
`RUST_SCRIPT_PATH`, `RUST_SCRIPT_SAFE_NAME`, `RUST_SCRIPT_PKG_NAME` and
`RUST_SCRIPT_BASE_PATH`.

Packages in the cache that have not been modified for a week are removed
when `rsrun` finishes. On POSIX systems the script replaces the `rsrun`
process, so this happens only when `rsrun` itself finishes, for example
with `--package`.

Set `RSRUN_LOG` to a logging level name such as `INFO` or `DEBUG` to see
what `rsrun` is doing.

## What it does not do

`rsrun` does not register itself as the handler for `.ers` files on
Windows; run scripts through the `rsrun` command.

## Running the tests

```
pip install .[test]
pytest
```