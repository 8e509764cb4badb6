# Output schema instructions are appended by OpenAIService.create_structured_completion

STEP_ANALYSIS_PROMPT = """You are an expert AI system analysis tool that evaluates interview responses.

Analyze this expert interview transcript where an expert evaluates two answers to a technical question.

QUESTION: {question_text}

ANSWER A: {answer_a}

ANSWER B: {answer_b}

EXPERT'S CHOICE: {preferred_answer}

INTERVIEW TRANSCRIPT:
{conversation}

Analyze this expert feedback and determine:

1. WINNER_FLAG: Simply output the expert's selection (A or B) based on their explicit choice.

2. SEVERITY_SCORE: On a scale from 0.0 to 1.0, how much better is the chosen answer?
   - 0.0 means both answers are equally valid
   - 1.0 means the chosen answer is significantly better and the other answer contains critical errors

3. RATIONALE_DIGEST: Summarize the expert's reasoning for their preference in 1-2 sentences.

4. KNOWLEDGE_GAPS: Identify 2-3 specific knowledge areas where improvement would lead to better answers.

5. PROMPT_SUGGESTIONS: Instead of specific facts, provide 2-3 general principles or approaches for improving prompts related to this type of question. Focus on structural or methodological improvements rather than adding specific domain knowledge.
"""

SESSION_SYNTHESIS_PROMPT = """You are an AI analysis tool that evaluates patterns across multiple interview questions.

Review the following analysis results from {question_count} questions in an expert interview session:

{analysis_input}

Based on these analyses, identify:

1. TOP_KNOWLEDGE_GAPS: Identify 3-5 key knowledge areas that appear as gaps across multiple questions or represent the most critical gaps.

2. CROSS_QUESTION_PROMPT_SUGGESTIONS: Create 3-5 general prompt improvement suggestions that would apply across all questions, not just individual ones. Focus on structural improvements, methodological approaches, or general principles rather than specific facts.

3. SUMMARY: Provide a brief overall assessment of this interview session (2-3 sentences).
"""
