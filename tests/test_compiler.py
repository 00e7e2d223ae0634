"""Functional tests for command rendering.

Every test renders a real Command against real Settings — no mocks.
"""

import pytest

from shellwrap.command import Command
from shellwrap.compiler import BUILTINS, compile_command, merge_environment, normalize_script
from shellwrap.config import Settings, configure


# --- Base mapping ---


def test_maps_a_command():
    assert Command("example").to_command() == "/usr/bin/env example"


def test_maps_arguments_in_order():
    c = Command("tar", "-czf", "out.tgz", "src")
    assert c.to_command() == "/usr/bin/env tar -czf out.tgz src"


def test_non_string_arguments_are_stringified():
    assert Command("sleep", 15).to_command() == "/usr/bin/env sleep 15"


@pytest.mark.parametrize("builtin", ["if", "test", "time"])
def test_not_mapping_a_builtin(builtin):
    assert Command(builtin).to_command() == builtin


def test_builtin_keeps_its_arguments():
    assert Command("test", "-d", "/var/log").to_command() == "test -d /var/log"


def test_builtin_set_covers_shell_keywords():
    assert {"if", "test", "time", "[", "cd", "while"} <= BUILTINS


def test_using_a_heredoc():
    c = Command("""
        if test ! -d /var/log; then
          echo "Example"
        fi
    """)
    assert c.to_command() == 'if test ! -d /var/log; then; echo "Example"; fi'


def test_normalize_script_drops_blank_lines():
    assert normalize_script("  a  \n\n   \n b\n") == "a; b"


def test_command_map_replaces_launcher():
    cfg = Settings(command_map={"rake": "bundle exec rake"})
    c = Command("rake", "db:migrate")
    assert compile_command(c, cfg) == "bundle exec rake db:migrate"


def test_command_map_ignored_for_unmapped_executable():
    cfg = Settings(command_map={"rake": "bundle exec rake"})
    assert compile_command(Command("ls"), cfg) == "/usr/bin/env ls"


# --- Environment ---


def test_including_the_env():
    c = Command("rails", "server", env={"rails_env": "production"})
    assert c.to_command() == "( RAILS_ENV=production /usr/bin/env rails server )"


def test_including_the_env_with_multiple_keys():
    c = Command("rails", "server", environment={"rails_env": "production", "foo": "bar"})
    assert c.to_command() == "( RAILS_ENV=production FOO=bar /usr/bin/env rails server )"


def test_including_the_env_doesnt_aggressively_escape():
    c = Command("rails", "server", env={"path": "/example:$PATH"})
    assert c.to_command() == "( PATH=/example:$PATH /usr/bin/env rails server )"


def test_global_env():
    configure(default_env={"default": "env"})
    c = Command("rails", "server", env={})
    assert c.to_command() == "( DEFAULT=env /usr/bin/env rails server )"


def test_default_env_is_overwritten_with_locally_defined():
    configure(default_env={"foo": "bar", "over": "under"})
    c = Command("rails", "server", env={"over": "write"})
    assert c.to_command() == "( FOO=bar OVER=write /usr/bin/env rails server )"


def test_merge_environment_keeps_default_positions():
    merged = merge_environment({"a": "1", "B": "2", "c": "3"}, {"d": "4", "b": "20"})
    assert list(merged.items()) == [("A", "1"), ("B", "20"), ("C", "3"), ("D", "4")]


def test_settings_are_read_at_render_time():
    c = Command("ls")
    assert c.to_command() == "/usr/bin/env ls"
    configure(default_env={"lang": "C"})
    assert c.to_command() == "( LANG=C /usr/bin/env ls )"


# --- Directory / umask ---


def test_working_in_a_given_directory():
    c = Command("ls", "-l", working_directory="/opt/sites")
    assert c.to_command() == "cd /opt/sites && /usr/bin/env ls -l"


def test_working_in_a_given_directory_with_env():
    c = Command("ls", "-l", cd="/opt/sites", env={"a": "b"})
    assert c.to_command() == "cd /opt/sites && ( A=b /usr/bin/env ls -l )"


def test_umask():
    configure(umask="007")
    assert Command("touch", "somefile").to_command() == "umask 007 && /usr/bin/env touch somefile"


def test_umask_option_overrides_configured_umask():
    cfg = Settings(umask="007")
    c = Command("touch", "somefile", umask="022")
    assert compile_command(c, cfg) == "umask 022 && /usr/bin/env touch somefile"


def test_umask_with_working_directory():
    configure(umask="007")
    c = Command("touch", "somefile", working_directory="/opt")
    assert c.to_command() == "cd /opt && umask 007 && /usr/bin/env touch somefile"


def test_umask_with_working_directory_and_user():
    configure(umask="007")
    c = Command("touch", "somefile", working_directory="/var", user="alice")
    assert c.to_command() == 'cd /var && umask 007 && sudo su alice -c "/usr/bin/env touch somefile"'


def test_umask_with_env_and_working_directory_and_user():
    configure(umask="007")
    c = Command("touch", "somefile", user="bob", env={"a": "b"}, working_directory="/var")
    assert c.to_command() == 'cd /var && umask 007 && ( A=b sudo su bob -c "/usr/bin/env touch somefile" )'


# --- User / group / background ---


def test_working_as_a_given_user():
    c = Command("whoami", user="anotheruser")
    assert c.to_command() == 'sudo su anotheruser -c "/usr/bin/env whoami"'


def test_working_as_a_given_group():
    c = Command("whoami", group="devvers")
    assert c.to_command() == 'sg devvers -c \\"/usr/bin/env whoami\\"'


def test_working_as_a_given_user_and_group():
    c = Command("whoami", user="anotheruser", group="devvers")
    assert c.to_command() == 'sudo su anotheruser -c "sg devvers -c \\"/usr/bin/env whoami\\""'


def test_backgrounding_a_task():
    c = Command("sleep", 15, run_in_background=True)
    assert c.to_command() == "nohup /usr/bin/env sleep 15 > /dev/null &"


def test_backgrounding_a_task_as_a_given_user():
    c = Command("sleep", 15, run_in_background=True, user="anotheruser")
    assert c.to_command() == 'sudo su anotheruser -c "nohup /usr/bin/env sleep 15 > /dev/null &"'


def test_backgrounding_a_task_as_a_given_group():
    c = Command("sleep", 15, run_in_background=True, group="devvers")
    assert c.to_command() == 'sg devvers -c \\"nohup /usr/bin/env sleep 15 > /dev/null &\\"'


def test_backgrounding_a_task_as_a_given_user_with_env():
    c = Command("sleep", 15, run_in_background=True, user="anotheruser", env={"a": "b"})
    assert c.to_command() == '( A=b sudo su anotheruser -c "nohup /usr/bin/env sleep 15 > /dev/null &" )'


def test_everything_at_once():
    cfg = Settings(default_env={"lang": "C"}, umask="002")
    c = Command(
        "deploy", "--now",
        working_directory="/srv/app", env={"stage": "prod"},
        user="deploy", group="www", run_in_background=True,
    )
    assert compile_command(c, cfg) == (
        'cd /srv/app && umask 002 && ( LANG=C STAGE=prod '
        'sudo su deploy -c "sg www -c \\"nohup /usr/bin/env deploy --now > /dev/null &\\"" )'
    )


# --- Purity ---


@pytest.mark.parametrize("options, wrapped", [
    ({"working_directory": "/srv"}, "cd /srv && /usr/bin/env id"),
    ({"umask": "077"}, "umask 077 && /usr/bin/env id"),
    ({"env": {"x": "1"}}, "( X=1 /usr/bin/env id )"),
    ({"group": "staff"}, 'sg staff -c \\"/usr/bin/env id\\"'),
    ({"user": "root"}, 'sudo su root -c "/usr/bin/env id"'),
    ({"run_in_background": True}, "nohup /usr/bin/env id > /dev/null &"),
])
def test_each_option_changes_only_its_own_wrap(options, wrapped):
    assert Command("id", **options).to_command() == wrapped


def test_rendering_is_repeatable_and_leaves_command_untouched():
    c = Command("whoami", user="bob", env={"a": "b"})
    first = c.to_command()
    assert c.to_command() == first
    assert not c.is_complete()
    assert c.stdout == "" and c.stderr == ""


def test_str_is_the_mapped_base_command():
    c = Command("ls", "-l", user="bob", working_directory="/tmp")
    assert str(c) == "/usr/bin/env ls -l"
