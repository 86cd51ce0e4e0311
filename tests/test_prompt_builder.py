import json

from healthrelay.schemas.analysis import AnalysisRequest
from healthrelay.services.prompt_builder import build_prompt, serialize_input


def test_serialize_input_is_compact_json():
    req = AnalysisRequest(findingsText="red eyes", numericScores={"redness": 0.7, "fatigue": 2})
    assert serialize_input(req) == '{"findingsText":"red eyes","numericScores":{"redness":0.7,"fatigue":2}}'


def test_serialize_input_is_truncated():
    req = AnalysisRequest(findingsText="x" * 5000)
    out = serialize_input(req, max_chars=2000)
    assert len(out) == 2000
    assert out.startswith('{"findingsText":"xxx')


def test_prompt_embeds_input_and_requests_json_keys():
    req = AnalysisRequest(findingsText="pale skin", numericScores={"pallor": 0.4})
    prompt = build_prompt(req)

    assert serialize_input(req) in prompt
    for key in ("summary", "suggestions", "disclaimer", "action"):
        assert f'"{key}"' in prompt
    assert "Respond ONLY with JSON." in prompt
    assert "in English" in prompt


def test_prompt_uses_preferred_language():
    prompt = build_prompt(AnalysisRequest(preferredLang="hi"))
    assert "in Hindi" in prompt


def test_unknown_language_code_is_passed_through():
    prompt = build_prompt(AnalysisRequest(preferredLang="sw"))
    assert "in sw" in prompt


def test_defaults_and_nulls():
    req = AnalysisRequest.model_validate({"findingsText": None, "numericScores": None, "thumbnail64": "abc"})
    assert req.findingsText == ""
    assert req.numericScores == {}
    assert req.preferredLang == "en"
    assert json.loads(serialize_input(req)) == {"findingsText": "", "numericScores": {}}


def test_translations_block_is_off_by_default():
    assert "translations" not in build_prompt(AnalysisRequest())


def test_translations_block_lists_requested_languages():
    prompt = build_prompt(AnalysisRequest(), translation_langs=["hi", "or"])
    assert '"translations"' in prompt
    assert '"hi": {"summary"' in prompt
    assert '"or": {"summary"' in prompt
    assert "Hindi, Odia" in prompt
