from utils.config import PipelineConfig, SettingsStore, load_config, validate_config


def _valid(**overrides):
    config = {
        'ai_provider': 'openai',
        'default_filter_mode': 'balanced',
        'min_duration': 2,
        'max_duration': 30,
        'cache_duration_hours': 24,
    }
    config.update(overrides)
    return config


def test_valid_config_has_no_errors():
    assert validate_config(_valid()) == []


def test_missing_youtube_key_is_not_an_error():
    assert validate_config(_valid(youtube_api_key=None)) == []


def test_validate_config_reports_each_problem():
    errors = validate_config(_valid(
        ai_provider='gemini',
        default_filter_mode='loose',
        min_duration=40,
        cache_duration_hours=0,
    ))
    assert len(errors) == 4
    assert any('AI_PROVIDER' in error for error in errors)
    assert any('DEFAULT_FILTER_MODE' in error for error in errors)
    assert any('MIN_DURATION_MINUTES' in error for error in errors)
    assert any('CACHE_DURATION_HOURS' in error for error in errors)


def test_load_config_reads_environment(monkeypatch):
    monkeypatch.setenv('YOUTUBE_API_KEY', 'yt')
    monkeypatch.setenv('AI_PROVIDER', 'anthropic')
    monkeypatch.setenv('MIN_DURATION_MINUTES', '3')
    monkeypatch.setenv('DATABASE_PATH', '/tmp/custom.db')

    config = load_config()

    assert config['youtube_api_key'] == 'yt'
    assert config['ai_provider'] == 'anthropic'
    assert config['min_duration'] == 3
    assert config['database_path'] == '/tmp/custom.db'


def test_pipeline_config_picks_provider_credentials():
    config = PipelineConfig.from_dict({
        'ai_provider': 'anthropic',
        'openai_api_key': 'sk',
        'anthropic_api_key': 'ak',
        'anthropic_model': 'claude-3-haiku-20240307',
        'min_duration': 1,
        'max_duration': 10,
    })
    assert config.ai_api_key == 'ak'
    assert config.ai_model == 'claude-3-haiku-20240307'
    assert config.duration_bounds.min_seconds == 60
    assert config.duration_bounds.max_seconds == 600


def test_pipeline_config_unknown_provider_means_openai():
    config = PipelineConfig.from_dict({'ai_provider': 'gemini', 'openai_api_key': 'sk', 'youtube_api_key': ''})
    assert config.ai_provider == 'openai'
    assert config.ai_api_key == 'sk'
    assert config.youtube_api_key is None


def test_snapshot_is_unaffected_by_later_updates():
    settings = SettingsStore(_valid(youtube_api_key='first'))
    snapshot = settings.snapshot()

    settings.update(youtube_api_key='second')

    assert snapshot.youtube_api_key == 'first'
    assert settings.snapshot().youtube_api_key == 'second'
    assert settings.get('youtube_api_key') == 'second'
