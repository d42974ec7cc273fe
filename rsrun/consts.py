"""Program-wide constants and the templates used to wrap script input."""

PROGRAM_NAME = "rsrun"

# Substitution name for the script body.
SCRIPT_BODY_SUB = "script"

# Substitution name for the script prelude.
SCRIPT_PRELUDE_SUB = "prelude"

# Template for script files that do not define a main function.
FILE_NO_MAIN_TEMPLATE = (
    "\n"
    "fn main() -> Result<(), Box<dyn std::error::Error+Sync+Send>> {\n"
    "    {#{script}}\n"
    "    Ok(())\n"
    "}\n"
)

# Template for `--expr` input: the value is printed unless it is `()`.
EXPR_TEMPLATE = "\n".join(
    [
        "",
        "#{prelude}",
        "use std::any::{Any, TypeId};",
        "",
        "fn __rsrun_is_unit<T: ?Sized + Any>(_value: &T) -> bool {",
        "    TypeId::of::<T>() == TypeId::of::<()>()",
        "}",
        "",
        "fn __rsrun_run() -> Result<(), Box<dyn std::error::Error>> {",
        "    match {#{script}} {",
        "        __rsrun_value => {",
        "            if !__rsrun_is_unit(&__rsrun_value) {",
        '                println!("{:?}", __rsrun_value);',
        "            }",
        "        }",
        "    }",
        "    Ok(())",
        "}",
        "",
        "fn main() {",
        "    if let Err(err) = __rsrun_run() {",
        '        eprintln!("Error: {}", err);',
        "        std::process::exit(1);",
        "    }",
        "}",
        "",
    ]
)


def _loop_template(with_count: bool) -> str:
    """Build the template that runs a closure once per line of stdin."""
    closure_args = "&str, usize" if with_count else "&str"
    lines = [
        "",
        "#![allow(unused_imports)]",
        "#![allow(unused_braces)]",
    ]
    if not with_count:
        lines.append("#{prelude}")
    lines += [
        "use std::any::Any;",
        "use std::io::prelude::*;",
        "",
        "fn main() {",
        "    let mut closure = __rsrun_closure(",
        "{#{script}}",
        "    );",
        "    let stdin = std::io::stdin();",
        "    let mut line = String::new();",
    ]
    if with_count:
        lines.append("    let mut count: usize = 0;")
    lines += [
        "    loop {",
        "        line.clear();",
        "        match stdin.read_line(&mut line) {",
        "            Ok(0) | Err(_) => break,",
        "            Ok(_) => {}",
        "        }",
    ]
    if with_count:
        lines += [
            "        count += 1;",
            "        let output = closure(&line, count);",
        ]
    else:
        lines.append("        let output = closure(&line);")
    lines += [
        "        if !(&output as &dyn Any).is::<()>() {",
        '            println!("{:?}", output);',
        "        }",
        "    }",
        "}",
        "",
        "fn __rsrun_closure<F, T>(closure: F) -> F",
        f"where F: FnMut({closure_args}) -> T, T: 'static {{",
        "    closure",
        "}",
        "",
    ]
    return "\n".join(lines)


# Template for `--loop` input without `--count`.
LOOP_TEMPLATE = _loop_template(with_count=False)

# Template for `--count --loop` input.
LOOP_COUNT_TEMPLATE = _loop_template(with_count=True)

# Maximum number of hex digits of the digest used in a package id.
ID_DIGEST_LEN_MAX = 24

# Age in milliseconds after which cached packages are removed.
MAX_CACHE_AGE_MS = 7 * 24 * 60 * 60 * 1000