from relaybot.management import AdminCommands


async def test_init_database_and_show_missing_profile(settings, tmp_path) -> None:
    commands = AdminCommands(settings.model_copy(update={
        'database_url': f"sqlite+aiosqlite:///{tmp_path / 'admin.db'}",
    }))

    assert (await commands.init_database())['success']

    result = await commands.show_profile(123)
    assert not result['success']
    assert "not found" in result['error']


async def test_state_commands_on_memory_backend(settings) -> None:
    commands = AdminCommands(settings)

    stats = await commands.state_stats()
    release = await commands.state_release(5)

    assert stats == {'success': True, 'stats': {'queue_size': 0, 'active_pairs': 0}}
    assert release['success']
    assert (await commands.state_partner(5))['partner_id'] is None
