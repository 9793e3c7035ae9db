# specialresource

A library for managing *special resources* on a cluster. A special resource is a
software stack for a hardware accelerator: driver containers, device plugins
and the objects that go with them. The package holds the logic that
reconciles those stacks. It depends only on the standard library.

## Modules

- `specialresource.api`: the resource types (`SpecialResource`,
  `SpecialResourceModule`, `PreflightValidation` and their specs and
  statuses), `ObjectMeta` with `has_finalizer`, `add_finalizer` and
  `remove_finalizer`, status conditions (`Condition`, `ConditionStatus`,
  `set_status_condition`, `find_status_condition`) and the API errors
  `ApiError`, `NotFoundError`, `ForbiddenError` and `ConflictError`.
  `set_status_condition` adds or updates a condition in place and only moves
  its transition time when the status changes.
- `specialresource.cli`: `parse_command_line(program_name, args)` parses the
  manager's flags into a `CommandLine`. It knows `--metrics-addr` (default
  `:8080`) and `--enable-leader-election` (default off). Flags take one or two
  dashes; values follow as the next argument or after `=`. Unknown flags,
  missing values and `-h`/`--help` raise `CommandLineError`.
- `specialresource.leaderelection`: `apply_openshift_options(opts)` fills a
  `ManagerOptions` (creating one when given `None`) with the leader election
  id `b6ae617b.openshift.io`, a lease duration of 137 s, a renew deadline of
  107 s and a retry period of 26 s.
- `specialresource.resourcehelper`: `ResourceHelper` answers questions about
  resource kinds (`is_namespaced`, `is_not_updateable`,
  `needs_resource_version_update`) and edits objects held as plain
  dictionaries (`update_resource_version`, `set_node_selector_terms`,
  `is_one_timer`, `set_label`, `set_meta_data`, `set_template_generation`).
  `nested_get` and `nested_set` walk nested mappings.
- `specialresource.cmgetter`: `ConfigMapGetter.get(url)` returns a file of a
  Helm chart repository stored in a ConfigMap, addressed as
  `cm://NAMESPACE/NAME/ELEMENT`. `index.yaml` is read from the ConfigMap's
  text data, every other element from its binary data; a missing element
  gives empty bytes. `get_logger()` returns a logger that writes to stderr
  only when `HELM_DEBUG` is `true`.
- `specialresource.state`: `StatusUpdater` marks a `SpecialResource` as
  ready, progressing or errored (one condition true, the other two false,
  plus a legacy `status.state` string) and records preflight verification
  results with `set_verification_status`.
- `specialresource.finalizers`: `SpecialResourceFinalizer` adds the
  `sro.openshift.io/finalizer` finalizer, and on `finalize` removes the
  resource's state labels from its nodes, deletes its namespace when a
  SpecialResource owns it, and drops the finalizers. `remove_resources`
  deletes every object carrying the owned label that the resource owns.
- `specialresource.preflight_controller`: `PreflightValidationReconciler`
  checks every `SpecialResource` against the image of a
  `PreflightValidation`. `reconcile(Request(name))` returns a
  `ReconcileResult` that asks to be run again after 60 s until every
  resource is verified.
- `specialresource.nodes`: `label_nodes_according_to_state` sets a state
  label to `Ready` on every node matching a node selector.

## Examples

Parse the manager's flags:

```python
from specialresource.cli import parse_command_line

cl = parse_command_line("manager", ["--enable-leader-election", "--metrics-addr", "1.2.3.4:5678"])
assert cl.enable_leader_election
assert cl.metrics_addr == "1.2.3.4:5678"
```

Ask about resource kinds and edit an object held as a dictionary:

```python
from specialresource.resourcehelper import ResourceHelper

helper = ResourceHelper()

helper.is_namespaced("Pod")              # True
helper.is_namespaced("ClusterRole")      # False
helper.is_not_updateable("Pod")          # True
helper.needs_resource_version_update("Service")  # True

obj = {"kind": "ConfigMap"}
helper.set_meta_data(obj, "my-release", "my-namespace")
# obj["metadata"] now holds the annotations meta.helm.sh/release-name and
# meta.helm.sh/release-namespace, and the label app.kubernetes.io/managed-by=Helm
```

Keep status conditions exclusive:

```python
from specialresource.api import ObjectMeta, SpecialResource
from specialresource.state import StatusUpdater

sr = SpecialResource(metadata=ObjectMeta(name="simple-kmod"))
updater = StatusUpdater(kube_client)
updater.set_as_progressing(sr, "HandlingState", "Working on: 0000-driver-build.yaml")
updater.set_as_ready(sr, "Success", "")
```

## Clients

The updater, finalizer, reconciler, node labelling and ConfigMap getter do
not talk to a cluster themselves. Each takes a client object that provides
the calls it needs:

- `StatusUpdater`: `status_update(obj)` and `status_patch(original, modified)`.
- `SpecialResourceFinalizer`: `update`, `get_nodes_by_labels`, `get`,
  `delete`, `server_groups_and_resources` and `list`, plus an optional object
  with `for_resource_unavailability(obj)`.
- `PreflightValidationReconciler`: `get_preflight_validation(name, namespace)`
  and `list_special_resources()`, a preflight object with
  `prepare_runtime_info(image)` and `preflight_upgrade_check(sr, run_info)`,
  and a `StatusUpdater`.
- `label_nodes_according_to_state`: `get_nodes_by_labels` and `update`.
- `ConfigMapGetter`: `get_config_map(namespace, name)` returning a
  `ConfigMap`.

Clients report failures by raising the errors from `specialresource.api`.

## What the package does not do

It has no client for a live cluster, no controller manager that watches
objects and calls the reconcilers, and no commands: parsing the manager's
flags and serving `cm://` URLs are library functions only. Helm chart
loading and rendering are not included.

## Tests

The tests use pytest and are installed with the `test` extra:

```
pip install -e ".[test]"
pytest
```