"""add atomic quiz write functions

create_quiz_atomic / update_quiz_atomic write a quiz with its whole
question tree in one transaction. Positions are renumbered from list
order, so the stored sequence is always 1..N.

Revision ID: b7c8d9e0f1a2
Revises: a6b7c8d9e0f1
Create Date: 2025-10-13 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op

revision: str = 'b7c8d9e0f1a2'
down_revision: Union[str, None] = 'a6b7c8d9e0f1'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


INSERT_QUESTION_TREE = """
  for v_question, v_question_position in
    select value, ordinality from jsonb_array_elements(p_payload->'questions') with ordinality
  loop
    insert into questions (id, quiz_id, content, explanation, position)
    values (
      gen_random_uuid(),
      v_quiz_id,
      v_question->>'content',
      v_question->>'explanation',
      v_question_position
    )
    returning id into v_question_id;

    insert into answers (id, question_id, content, is_correct, position)
    select
      gen_random_uuid(),
      v_question_id,
      opt.value->>'content',
      coalesce((opt.value->>'is_correct')::boolean, false),
      opt.ordinality
    from jsonb_array_elements(v_question->'options') with ordinality as opt;
  end loop;
"""


CREATE_QUIZ_ATOMIC = f"""
create or replace function create_quiz_atomic(
  p_user_id uuid,
  p_payload jsonb
) returns uuid as $$
declare
  v_quiz_id uuid;
  v_question_id uuid;
  v_question jsonb;
  v_question_position bigint;
begin
  if coalesce(trim(p_payload->>'title'), '') = '' then
    raise exception 'Quiz title is required';
  end if;

  if coalesce(jsonb_array_length(p_payload->'questions'), 0) < 1 then
    raise exception 'Quiz must have at least one question';
  end if;

  insert into quizzes (id, user_id, title, description, status, source, ai_model, ai_prompt, ai_temperature)
  values (
    gen_random_uuid(),
    p_user_id,
    p_payload->>'title',
    p_payload->>'description',
    'draft',
    coalesce(p_payload->>'source', 'manual')::quiz_source,
    p_payload->>'ai_model',
    p_payload->>'ai_prompt',
    (p_payload->>'ai_temperature')::double precision
  )
  returning id into v_quiz_id;
{INSERT_QUESTION_TREE}
  return v_quiz_id;
end;
$$ language plpgsql;
"""


UPDATE_QUIZ_ATOMIC = f"""
create or replace function update_quiz_atomic(
  p_quiz_id uuid,
  p_user_id uuid,
  p_payload jsonb
) returns uuid as $$
declare
  v_quiz_id uuid := p_quiz_id;
  v_owner_id uuid;
  v_question_id uuid;
  v_question jsonb;
  v_question_position bigint;
begin
  select user_id into v_owner_id
  from quizzes
  where id = p_quiz_id and deleted_at is null
  for update;

  if not found then
    raise exception 'Quiz not found';
  end if;

  if v_owner_id <> p_user_id then
    raise exception 'Forbidden';
  end if;

  if coalesce(jsonb_array_length(p_payload->'questions'), 0) < 1 then
    raise exception 'Quiz must have at least one question';
  end if;

  delete from questions where quiz_id = p_quiz_id;

  update quizzes
  set
    title = p_payload->>'title',
    description = p_payload->>'description',
    source = coalesce(p_payload->>'source', source::text)::quiz_source,
    ai_model = p_payload->>'ai_model',
    ai_prompt = p_payload->>'ai_prompt',
    ai_temperature = (p_payload->>'ai_temperature')::double precision,
    updated_at = now()
  where id = p_quiz_id;
{INSERT_QUESTION_TREE}
  return v_quiz_id;
end;
$$ language plpgsql;
"""


def upgrade() -> None:
    op.execute(CREATE_QUIZ_ATOMIC)
    op.execute(UPDATE_QUIZ_ATOMIC)


def downgrade() -> None:
    op.execute("drop function if exists update_quiz_atomic(uuid, uuid, jsonb)")
    op.execute("drop function if exists create_quiz_atomic(uuid, jsonb)")
