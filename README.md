# kubeapply

A library of building blocks for working with Kubernetes configuration trees:
rendering template files in place, marking generated YAML, running external
tools with line-by-line output, in-memory locks and stores, a leader election
loop, and helpers for producing Starlark configuration.

## Installation

```
pip install .
```

The package depends on PyYAML and Jinja2.

## Modules

### `kubeapply.templating`

`apply_template(directory, data, delete_sources, strict)` walks `directory`
and renders every file whose path contains `.gotpl.` as a Jinja2 template.
The result is written beside the template with `.gotpl.` replaced by `.`
(`app.gotpl.yaml` becomes `app.yaml`). If `delete_sources` is true, the
template is removed afterwards. If `strict` is true, an undefined variable is
an error. When `data` is a mapping, its keys are the template variables.
Otherwise the value is available as `data`. Any failure raises
`jinja2.TemplateError`, and its message names the template.

Templates can use these names, both as functions and as filters:

- `lookup(value, path)` follows a dot-separated path through nested mappings.
  It returns `None` when a key is missing. It raises `TemplateLookupError`
  when the path passes through a value that is not a mapping.
- `pathLookup(path, value)` is the same with the arguments swapped.
- `toYaml(value)` renders a value as block-style YAML.
- `urlEncode(value)` quotes a value for use in a query string.

Top-level templates can also call the following functions. Each one renders
another file relative to the template:

- `fileContents(rel_path)` returns the rendered file, with whitespace stripped
  from both ends.
- `configMapEntry(rel_path)` returns the rendered file as an indented
  `name: |` ConfigMap data entry.
- `configMapEntries(rel_dir)` returns one such entry for every file in a
  directory. It skips subdirectories and dot files, and it strips `.gotpl.`
  from the entry names.

`lookup`, `path_lookup` and `to_yaml` can also be imported directly.

### `kubeapply.headers`

`add_headers(root)` prefixes every `.yaml` file under `root` with
`# Generated by "kubeapply expand". DO NOT EDIT.` It does not add the header
to a file that already starts with it.

### `kubeapply.cmd`

`run_cmd_with_printers(command, args, extra_env, blocked_env, stdout_printer, stderr_printer)`
runs a command and passes each line of its stdout and stderr to the matching
callback. The child process gets the current environment, minus the names in
`blocked_env`, plus the `NAME=value` entries in `extra_env`. A non-zero exit
status raises `subprocess.CalledProcessError`.

`logging_info_printer(prefix)`, `logging_warn_printer(prefix)` and
`logging_debug_printer(prefix)` build callbacks that write each line to the
`kubeapply.cmd` logger.

### `kubeapply.store`

- `LocalLocker` holds named locks in memory. `acquire(name)` and
  `release(name)` raise `LockError` when the lock is already held or is not
  held.
- `InMemoryStore` is a string key/value store. `get(key)` returns `""` for a
  key that is missing.

### `kubeapply.leaderelection`

`LeaderElector(config)` runs leader election against any `ResourceLock`. A
`ResourceLock` is an abstract class with the methods `get`, `create`,
`update`, `record_event`, `identity` and `describe`. Its `get` method raises
`LockNotFoundError` when no record exists yet.

`LeaderElectionConfig` holds the lock, the durations in seconds
(`lease_duration`, `renew_deadline`, `retry_period`), the `LeaderCallbacks`,
and `release_on_cancel`. An invalid config raises `ValueError`.

- `run(stop_event)` tries to acquire leadership, then keeps renewing it until
  `stop_event` is set or renewal fails.
- `get_leader()` and `is_leader()` report the last leader that was observed.
- `check(max_tolerable_expired_lease)` raises `RuntimeError` when this
  client's lease has been expired for too long.
- `run_or_die(stop_event, config)` builds an elector and runs it.

### `kubeapply.starconfig`

- `Config` and `Arg` describe the entrypoint and arguments of a generated
  Starlark function.
- `Arg.default_value_str()` and `Arg.required_statement()` return Starlark
  source text.
- `Config.sub_variable(value)` returns the name of the argument whose default
  equals `value`, or `""` when there is none.
- `MODULES` maps Starlark module names such as `corev1` to Kubernetes API
  package paths.
- `pkg_to_module` and `module_to_import_name` translate in each direction and
  raise `LookupError` for unknown names.

### `kubeapply.yamlfuncs`

- `write_json(value)` renders `None`, scalars, lists and dicts as JSON.
- `yaml_marshal(value)` renders a plain value as YAML with sorted keys.
- `yaml_unmarshal(blob)` parses the first YAML document into dicts, lists and
  scalars. Timestamps stay as strings.
- `yaml_module()` returns a `Module` named `yaml` that exposes `marshal` and
  `unmarshal`.

## Example

```python
from kubeapply.headers import add_headers
from kubeapply.templating import apply_template

apply_template("build/configs", {"env": "staging"}, True, False)
add_headers("build/configs")
```

```python
from kubeapply.store import LocalLocker

locker = LocalLocker()
locker.acquire("cluster-a")
try:
    ...
finally:
    locker.release("cluster-a")
```

## What this package does not do

- It has no command-line program. Everything is called from Python.
- It does not fetch configuration from archives, git repositories, HTTP or
  S3.
- It does not copy or prune directory trees.
- It does not validate manifests against Kubernetes schemas.
- It does not report metrics.
- Locks and stores live only in process memory; nothing is stored in a
  cluster.
- Leader election needs a `ResourceLock` implementation supplied by the
  caller.
- It does not evaluate Starlark, and it does not convert Kubernetes objects to
  or from Starlark source. It provides only the configuration types and YAML
  helpers described above.