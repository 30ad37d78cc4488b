"""Property-based tests: engine plans validate and synthesize, broken plans are rejected."""

from __future__ import annotations

import re

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from autodeploy.engine import decide
from autodeploy.schemas import (
    Block,
    CloudProvider,
    DatabaseEngine,
    DeploymentIntent,
    ExecutionModel,
    Framework,
    InfrastructurePlan,
    Interpolation,
    OutputSpec,
    Ref,
    RepositorySummary,
    ResourceKind,
    ResourceSpec,
    ScalingMode,
    Topology,
    VariableSpec,
)
from autodeploy.synthesis import escape_string, synthesize
from autodeploy.validation import ValidationStatus, validate

# Characters that matter to HCL quoting and to placeholder templates
tricky_text = st.text(alphabet=st.sampled_from(list("ab01 ${}%\\\"'\n\t")), max_size=40)

summaries = st.builds(
    RepositorySummary,
    primary_language=st.sampled_from(["python", "javascript", "typescript", "html", "go", "unknown"]),
    framework=st.sampled_from(list(Framework)),
    entry_port=st.one_of(st.none(), st.integers(min_value=1, max_value=65535)),
    needs_database=st.booleans(),
    has_static_assets=st.booleans(),
    has_migrations=st.booleans(),
    build_command=st.one_of(st.none(), tricky_text),
    start_command=st.one_of(st.none(), tricky_text),
    repository_url=st.sampled_from(["", "https://github.com/Arvo-AI/hello_world", "git@github.com:a/b.git"]),
)

intents = st.builds(
    DeploymentIntent,
    cloud_provider=st.sampled_from(list(CloudProvider)),
    scaling=st.sampled_from(list(ScalingMode)),
    execution_model=st.sampled_from(list(ExecutionModel)),
    database_requested=st.booleans(),
    cdn_requested=st.booleans(),
    database_engine=st.one_of(st.none(), st.sampled_from(list(DatabaseEngine))),
    description=tricky_text,
)


@settings(max_examples=200, deadline=None)
@given(summaries, intents)
def test_plans_are_consistent(summary, intent):
    plan = decide(summary, intent)
    status = validate(plan).status

    if plan.provider == CloudProvider.AZURE:
        assert plan.topology == Topology.UNSUPPORTED
        assert status == ValidationStatus.UNSUPPORTED
        assert plan.resources == []
        return

    assert status == ValidationStatus.OK
    names = {spec.logical_name for spec in plan.resources}
    assert len(names) == len(plan.resources)
    for spec in plan.resources:
        for ref in spec.references():
            if isinstance(ref, Ref):
                assert ref.logical_name in names
            else:
                assert ref.name in plan.variables
    assert plan.estimated_monthly_cost.amount > 0


@settings(max_examples=200, deadline=None)
@given(summaries, intents)
def test_supported_plans_synthesize(summary, intent):
    plan = decide(summary, intent)
    if plan.is_unsupported:
        return
    bundle = synthesize(plan)
    assert bundle == synthesize(plan)
    for name in plan.resources:
        assert f'"{name.logical_name}" {{' in bundle.main


@settings(max_examples=300)
@given(st.text())
def test_escaped_strings_have_no_live_templates(text):
    escaped = escape_string(text)
    assert re.search(r"(?<!\$)\$\{", escaped) is None
    assert re.search(r"(?<!%)%\{", escaped) is None
    assert "\n" not in escaped


@settings(max_examples=100, deadline=None)
@given(tricky_text.filter(lambda s: s.strip()))
def test_start_command_is_embedded_literally(command):
    summary = RepositorySummary(
        primary_language="python",
        framework=Framework.FLASK,
        entry_port=5000,
        start_command=command,
        repository_url="https://github.com/Arvo-AI/hello_world",
    )
    plan = decide(summary, DeploymentIntent(cloud_provider=CloudProvider.AWS))
    assert plan.topology == Topology.SINGLE_VM
    assert f"nohup {escape_string(command)} > " in synthesize(plan).main


logical_names = st.from_regex(r"[a-z][a-z0-9_]{0,12}", fullmatch=True)
PLACEMENTS = ["attribute", "block", "list_of_blocks", "interpolation", "map", "output"]


@settings(max_examples=300, deadline=None)
@given(
    st.lists(logical_names, min_size=1, max_size=5, unique=True),
    logical_names,
    st.sampled_from(PLACEMENTS),
    st.data(),
)
def test_dangling_refs_are_always_rejected(names, missing, placement, data):
    assume(missing not in names)
    dangling = Ref(logical_name=missing, attribute=data.draw(st.sampled_from(["id", "arn", "port"])))
    # Valid references between declared resources alongside the dangling one
    resources = [
        ResourceSpec(
            kind=ResourceKind.COMPUTE,
            logical_name=name,
            resource_type="aws_instance",
            attributes={"peer": Ref(logical_name=data.draw(st.sampled_from(names)), attribute="id")},
        )
        for name in names
    ]
    outputs = {}
    host = data.draw(st.integers(min_value=0, max_value=len(resources) - 1))
    attributes = dict(resources[host].attributes)
    if placement == "attribute":
        attributes["target"] = dangling
    elif placement == "block":
        attributes["config"] = Block(attributes={"inner": Block(attributes={"target": dangling})})
    elif placement == "list_of_blocks":
        attributes["rule"] = [Block(attributes={"port": 80}), Block(attributes={"target": dangling})]
    elif placement == "interpolation":
        attributes["url"] = Interpolation(template="https://{0}/{1}", args=(resources[0].references()[0], dangling))
    elif placement == "map":
        attributes["tags"] = {"Owner": dangling}
    else:
        outputs["leak"] = OutputSpec(value=dangling)
    resources[host] = resources[host].model_copy(update={"attributes": attributes})

    plan = InfrastructurePlan(
        provider=CloudProvider.AWS,
        topology=Topology.SINGLE_VM,
        resources=resources,
        variables={"region": VariableSpec(description="region", default="us-east-1")},
        outputs=outputs,
    )
    result = validate(plan)
    assert result.status == ValidationStatus.INCONSISTENT
    assert any(f"'{missing}'" in issue for issue in result.issues)
